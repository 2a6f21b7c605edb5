import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from algosdk.v2client.algod import AlgodClient
from dotenv import load_dotenv

from .clock import ALGOD_URL, AlgodRoundClock, BlockClock
from .contract import DEFAULT_PLATFORM_FEE, ContentRegistry
from .fees import AlgorandFeeTransfer, FeeLedger

logger = logging.getLogger(__name__)

FEE_BACKENDS = ("ledger", "algorand")
CLOCKS = ("local", "algod")


@dataclass
class Settings:
    authority: Optional[str] = None
    platform_fee: int = DEFAULT_PLATFORM_FEE
    fee_backend: str = "ledger"
    clock: str = "local"
    algod_url: str = ALGOD_URL
    algod_token: str = ""
    fee_payer_mnemonics: List[str] = field(default_factory=list)


def load_settings(env_file: Optional[Union[str, Path]] = None) -> Settings:
    """
    Read registry settings from the environment.

    A ``.env`` file is loaded first when present (defaults to the current
    directory); variables already set in the process win over the file.
    """
    load_dotenv(env_file if env_file is not None else Path.cwd() / ".env")

    fee_backend = os.getenv("REGISTRY_FEE_BACKEND", "ledger").strip().lower()
    if fee_backend not in FEE_BACKENDS:
        raise ValueError(f"REGISTRY_FEE_BACKEND must be one of {FEE_BACKENDS}, got {fee_backend!r}")
    clock = os.getenv("REGISTRY_CLOCK", "local").strip().lower()
    if clock not in CLOCKS:
        raise ValueError(f"REGISTRY_CLOCK must be one of {CLOCKS}, got {clock!r}")

    raw_fee = os.getenv("REGISTRY_PLATFORM_FEE", str(DEFAULT_PLATFORM_FEE)).strip()
    try:
        platform_fee = int(raw_fee)
    except ValueError:
        raise ValueError(f"REGISTRY_PLATFORM_FEE must be an integer, got {raw_fee!r}") from None

    raw_mnemonics = os.getenv("FEE_PAYER_MNEMONICS", "")
    return Settings(
        authority=os.getenv("REGISTRY_AUTHORITY", "").strip() or None,
        platform_fee=platform_fee,
        fee_backend=fee_backend,
        clock=clock,
        algod_url=os.getenv("ALGOD_URL", ALGOD_URL).strip(),
        algod_token=os.getenv("ALGOD_TOKEN", "").strip(),
        fee_payer_mnemonics=[m.strip() for m in raw_mnemonics.split(";") if m.strip()],
    )


def deploy(settings: Settings) -> ContentRegistry:
    """Build a registry from ``settings`` and apply the configured authority and fee."""
    if settings.clock == "algod":
        clock = AlgodRoundClock(settings.algod_url, settings.algod_token)
    else:
        clock = BlockClock(auto_advance=True)

    if settings.fee_backend == "algorand":
        client = AlgodClient(settings.algod_token, settings.algod_url)
        fee_backend = AlgorandFeeTransfer.from_mnemonics(client, settings.fee_payer_mnemonics)
    else:
        fee_backend = FeeLedger()

    registry = ContentRegistry(clock=clock, fee_backend=fee_backend)

    if settings.authority:
        registry.set_authority(settings.authority)
        # The fee can only change once an authority exists
        if settings.platform_fee != registry.platform_fee and not registry.set_platform_fee(settings.platform_fee):
            raise ValueError(f"Invalid platform fee {settings.platform_fee}")
    elif settings.platform_fee != DEFAULT_PLATFORM_FEE:
        logger.warning("REGISTRY_PLATFORM_FEE ignored: no REGISTRY_AUTHORITY configured")

    logger.info("🚀 Content Registry ready!")
    logger.info(f"Authority: {registry.authority or '(unset)'} | Fee: {registry.platform_fee} | Backend: {settings.fee_backend} | Clock: {settings.clock}")
    return registry

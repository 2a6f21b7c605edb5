"""
Registration fee backends.

The registry charges ``platform_fee`` on every registration by calling a fee
backend with ``(amount, sender, recipient)``. A backend either returns the
``FeeTransfer`` it performed or raises ``FeeTransferError``; in the latter
case the registration is not committed.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol

from algosdk import account, encoding, mnemonic
from algosdk.error import (
    AlgodHTTPError,
    AlgodRequestError,
    ConfirmationTimeoutError,
    TransactionRejectedError,
)
from algosdk.transaction import PaymentTxn, wait_for_confirmation
from algosdk.v2client.algod import AlgodClient

from .errors import FeeTransferError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeeTransfer:
    amount: int
    sender: str
    recipient: str
    tx_id: Optional[str] = None


class FeeBackend(Protocol):
    def __call__(self, amount: int, sender: str, recipient: str) -> FeeTransfer: ...


class FeeLedger:
    """In-memory record of every fee charged. Nothing actually moves."""

    def __init__(self) -> None:
        self._transfers: List[FeeTransfer] = []
        self._lock = threading.Lock()

    def __call__(self, amount: int, sender: str, recipient: str) -> FeeTransfer:
        transfer = FeeTransfer(amount=amount, sender=sender, recipient=recipient)
        with self._lock:
            self._transfers.append(transfer)
        logger.info(f"[FEE] {amount} from {sender} to {recipient}")
        return transfer

    @property
    def transfers(self) -> List[FeeTransfer]:
        with self._lock:
            return list(self._transfers)

    def total_for(self, recipient: str) -> int:
        with self._lock:
            return sum(t.amount for t in self._transfers if t.recipient == recipient)

    def clear(self) -> None:
        with self._lock:
            self._transfers.clear()


class AlgorandFeeTransfer:
    """
    Pays the fee on-chain as a payment transaction from caller to authority.

    The service signs on behalf of callers, so every caller that registers
    content needs a key in ``signers`` (address -> private key). Amounts are
    microAlgos.
    """

    def __init__(self, client: AlgodClient, signers: Dict[str, str], wait_rounds: int = 8) -> None:
        self.client = client
        self.signers = dict(signers)
        self.wait_rounds = wait_rounds

    @classmethod
    def from_mnemonics(cls, client: AlgodClient, mnemonics: Iterable[str], wait_rounds: int = 8) -> "AlgorandFeeTransfer":
        signers = {}
        for phrase in mnemonics:
            private_key = mnemonic.to_private_key(phrase.strip())
            signers[account.address_from_private_key(private_key)] = private_key
        logger.info(f"[FEE] Loaded {len(signers)} fee payer account(s)")
        return cls(client, signers, wait_rounds=wait_rounds)

    def __call__(self, amount: int, sender: str, recipient: str) -> FeeTransfer:
        private_key = self.signers.get(sender)
        if private_key is None:
            raise FeeTransferError(f"No signing key for fee payer {sender}")
        if not encoding.is_valid_address(recipient):
            raise FeeTransferError(f"Authority {recipient} is not an Algorand address")

        try:
            sp = self.client.suggested_params()
            txn = PaymentTxn(sender=sender, sp=sp, receiver=recipient, amt=amount)
            tx_id = self.client.send_transaction(txn.sign(private_key))
            logger.info(f"[CHAIN] Fee payment submitted: {tx_id}")
            wait_for_confirmation(self.client, tx_id, wait_rounds=self.wait_rounds)
        except (AlgodHTTPError, AlgodRequestError, ConfirmationTimeoutError, TransactionRejectedError, OSError) as e:
            # OSError covers an unreachable node (urllib URLError)
            raise FeeTransferError(f"Fee payment from {sender} failed: {e}") from e

        logger.info(f"[FEE] {amount} from {sender} to {recipient} (tx {tx_id})")
        return FeeTransfer(amount=amount, sender=sender, recipient=recipient, tx_id=tx_id)

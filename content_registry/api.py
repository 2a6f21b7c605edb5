from typing import List, Optional

from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .contract import ContentRecord, ContentRegistry, ContentUpdate
from .deploy_config import deploy, load_settings
from .errors import ErrorCode, RegistryError

ERROR_STATUS = {
    ErrorCode.CONTENT_NOT_FOUND: 404,
    ErrorCode.NOT_AUTHORIZED: 403,
    ErrorCode.DUPLICATE_CONTENT: 409,
    ErrorCode.AUTHORITY_NOT_SET: 412,
}


class AuthorityRequest(BaseModel):
    principal: str


class PlatformFeeRequest(BaseModel):
    fee: int


class RegisterRequest(BaseModel):
    content_hash: str = Field(..., description="32-byte content hash, hex encoded")
    title: str
    description: str = ""
    ipfs_link: str
    price: int
    royalty_rate: int
    category: str
    tags: List[str] = []


class UpdateRequest(BaseModel):
    title: str
    description: str = ""
    ipfs_link: str
    price: int


def decode_hash(value: str) -> Optional[bytes]:
    """Hex (optionally ``0x``-prefixed) to bytes; None when it is not hex."""
    if value.lower().startswith("0x"):
        value = value[2:]
    try:
        return bytes.fromhex(value)
    except ValueError:
        return None


def record_to_json(record: ContentRecord) -> dict:
    return {
        "content_hash": record.content_hash.hex(),
        "creator": record.creator,
        "title": record.title,
        "description": record.description,
        "ipfs_link": record.ipfs_link,
        "price": record.price,
        "royalty_rate": record.royalty_rate,
        "category": record.category,
        "tags": list(record.tags),
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "is_active": record.is_active,
    }


def update_to_json(content_id: int, update: ContentUpdate) -> dict:
    return {
        "id": content_id,
        "title": update.title,
        "description": update.description,
        "ipfs_link": update.ipfs_link,
        "price": update.price,
        "updated_at": update.updated_at,
        "updater": update.updater,
    }


def error_response(code: ErrorCode) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(code, 400),
        content={"error": int(code), "name": code.name},
    )


def create_app(registry: Optional[ContentRegistry] = None) -> FastAPI:
    if registry is None:
        registry = deploy(load_settings())

    app = FastAPI(title="Content Registry API")
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError):
        return JSONResponse(status_code=502, content={"error": type(exc).__name__, "detail": str(exc)})

    @app.get("/")
    async def root():
        return {"status": "ok", "message": "Content Registry API is running", "endpoints": ["/registry", "/authority", "/platform-fee", "/content"]}

    @app.get("/registry")
    def get_registry():
        return {
            "count": registry.get_content_count(),
            "platform_fee": registry.platform_fee,
            "authority": registry.authority,
        }

    @app.post("/authority")
    def set_authority(body: AuthorityRequest):
        if not registry.set_authority(body.principal):
            return JSONResponse(status_code=409, content={"error": "authority already set", "authority": registry.authority})
        return {"ok": True, "authority": body.principal}

    @app.put("/platform-fee")
    def set_platform_fee(body: PlatformFeeRequest):
        if not registry.set_platform_fee(body.fee):
            return JSONResponse(status_code=400, content={"error": "platform fee rejected", "fee": body.fee})
        return {"ok": True, "platform_fee": body.fee}

    @app.post("/content")
    def register_content(body: RegisterRequest, x_caller: str = Header(...)):
        # Undecodable hex goes through as an empty hash so the registry reports it in order
        content_hash = decode_hash(body.content_hash)
        result = registry.register_content(
            x_caller,
            content_hash if content_hash is not None else b"",
            body.title,
            body.description,
            body.ipfs_link,
            body.price,
            body.royalty_rate,
            body.category,
            body.tags,
        )
        if not result.ok:
            return error_response(result.error)
        return {"ok": True, "id": result.value}

    @app.get("/content/hash/{content_hash}")
    def get_content_by_hash(content_hash: str):
        raw = decode_hash(content_hash)
        if raw is None:
            return error_response(ErrorCode.INVALID_HASH)
        record = registry.get_content_by_hash(raw)
        if record is None:
            return error_response(ErrorCode.CONTENT_NOT_FOUND)
        return record_to_json(record)

    @app.get("/content/hash/{content_hash}/registered")
    def is_content_registered(content_hash: str):
        raw = decode_hash(content_hash)
        if raw is None:
            return error_response(ErrorCode.INVALID_HASH)
        return {"content_hash": raw.hex(), "registered": registry.is_content_registered(raw)}

    @app.put("/content/{content_id}")
    def update_content(content_id: int, body: UpdateRequest, x_caller: str = Header(...)):
        result = registry.update_content(x_caller, content_id, body.title, body.description, body.ipfs_link, body.price)
        if not result.ok:
            return error_response(result.error)
        return {"ok": True, "id": content_id}

    @app.get("/content/{content_id}")
    def get_content(content_id: int):
        record = registry.get_content(content_id)
        if record is None:
            return error_response(ErrorCode.CONTENT_NOT_FOUND)
        return {"id": content_id, **record_to_json(record)}

    @app.get("/content/{content_id}/history")
    def get_content_update(content_id: int):
        update = registry.get_content_update(content_id)
        if update is None:
            return error_response(ErrorCode.CONTENT_NOT_FOUND)
        return update_to_json(content_id, update)

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("content_registry.api:create_app", factory=True, host="0.0.0.0", port=8000)

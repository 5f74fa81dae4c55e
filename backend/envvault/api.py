from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from envvault.models import (
    AddSecretRequest,
    EnvvaultPath,
    FullSecret,
    ImportRequest,
    ImportResult,
    OkResponse,
    Secret,
    UpdateSecretRequest,
)
from envvault.core.storage import ValidationError
from envvault.core.vault import VaultService, get_vault

router = APIRouter()


# --- Lifecycle ---
@router.post("/init", response_model=OkResponse)
def init_vault(vault: VaultService = Depends(get_vault)):
    return OkResponse(ok=vault.init())


# --- Listing / search (masked only) ---
@router.get("/secrets", response_model=List[Secret])
def get_all_secrets(vault: VaultService = Depends(get_vault)):
    return vault.get_all_secrets()


@router.get("/secrets/search", response_model=List[Secret])
def search_vault(
    q: str = "",
    limit: Optional[int] = Query(default=None, ge=0),
    vault: VaultService = Depends(get_vault),
):
    return vault.search_vault(q, limit=limit)


# --- Single secret ---
@router.get("/secrets/{secret_id}/value", response_model=FullSecret)
def get_full_secret(secret_id: int, vault: VaultService = Depends(get_vault)):
    value = vault.get_full_secret(secret_id)
    if value is None:
        raise HTTPException(status_code=404, detail="secret not found")
    return FullSecret(id=secret_id, value=value)


@router.post("/secrets", response_model=OkResponse)
def add_secret(payload: AddSecretRequest, vault: VaultService = Depends(get_vault)):
    try:
        return OkResponse(ok=vault.add_secret(payload.key, payload.value))
    except ValidationError as ex:
        raise HTTPException(status_code=400, detail=str(ex))


@router.put("/secrets/{secret_id}", response_model=OkResponse)
def update_secret(secret_id: int, payload: UpdateSecretRequest, vault: VaultService = Depends(get_vault)):
    return OkResponse(ok=vault.update_secret(secret_id, payload.value))


@router.delete("/secrets/{secret_id}", response_model=OkResponse)
def delete_secret(secret_id: int, vault: VaultService = Depends(get_vault)):
    return OkResponse(ok=vault.delete_secret(secret_id))


# --- .env import / export ---
@router.post("/import", response_model=ImportResult)
def import_env(payload: ImportRequest, vault: VaultService = Depends(get_vault)):
    return vault.import_env(payload.content)


@router.get("/export", response_class=PlainTextResponse)
def export_env(vault: VaultService = Depends(get_vault)):
    return PlainTextResponse(vault.export_env())


# --- Shell sync ---
@router.post("/sync", response_model=OkResponse)
def sync_to_shell(vault: VaultService = Depends(get_vault)):
    return OkResponse(ok=vault.sync_to_shell())


@router.get("/sync/path", response_model=EnvvaultPath)
def get_envvault_path(vault: VaultService = Depends(get_vault)):
    return EnvvaultPath(path=vault.get_envvault_path())

from __future__ import annotations
from typing import List
from pydantic import BaseModel, Field
import time

# --- Stored records ---

class SecretRecord(BaseModel):
    id: int
    key: str
    # Cleartext in memory, ciphertext on disk. Never part of repr/log output.
    value: str = Field(repr=False)
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)

class VaultDocument(BaseModel):
    v: int = 1
    next_id: int = 1  # high-water mark; ids are never handed out twice
    secrets: List[SecretRecord] = []

# --- Projections ---

class Secret(BaseModel):
    """Masked list item; the only shape multi-secret paths ever return."""
    id: int
    key: str
    value_masked: str

class FullSecret(BaseModel):
    id: int
    value: str = Field(repr=False)

# --- Request / response bodies ---

class AddSecretRequest(BaseModel):
    key: str
    value: str = Field(repr=False)

class UpdateSecretRequest(BaseModel):
    value: str = Field(repr=False)

class ImportRequest(BaseModel):
    content: str = Field(repr=False)

class ImportResult(BaseModel):
    applied: int = 0
    skipped: int = 0

class OkResponse(BaseModel):
    ok: bool

class EnvvaultPath(BaseModel):
    path: str

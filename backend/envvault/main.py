from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from envvault.api import router
from envvault.core.vault import VaultService, get_vault


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # A store that fails to open leaves the API up in degraded mode (empty lists, False)
    get_vault().init()
    yield
    get_vault().close()


app = FastAPI(title="EnvVault Core", lifespan=lifespan)

# The desktop renderer is served from file:// or the vite dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")

@app.get("/")
def health_check(vault: VaultService = Depends(get_vault)):
    return {"status": "EnvVault Core Running", "store_open": vault.storage.is_open}

from fastapi import FastAPI
from lumos.api.routes import router
from lumos.tools.registry import load_capabilities


app = FastAPI(title="Lumos Task Orchestrator", version="0.1.0")
app.include_router(router, prefix="/v1")

@app.on_event("startup")
async def on_startup():
    load_capabilities()

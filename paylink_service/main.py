"""
MXPaylink orchestrator: webhooks de WhatsApp (360Dialog) y PayPal.

Arranque:
    uvicorn main:app --host 0.0.0.0 --port $PORT
"""
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from core.credentials import CredentialResolver
from core.encryption import SymmetricCipher
from core.log_sanitizer import install_log_sanitizer
from core.security_middleware import SecurityHeadersMiddleware
from db import db
from routes.paypal_webhooks import router as paypal_webhooks_router
from routes.whatsapp_webhooks import router as whatsapp_webhooks_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
install_log_sanitizer()
logger = logging.getLogger("mxpaylink")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Sin clave válida no hay arranque: ConfigurationError tumba el proceso.
    cipher = SymmetricCipher.from_env()
    app.state.credential_resolver = CredentialResolver(cipher)
    await db.connect()
    logger.info("🚀 MXPaylink orchestrator listo")
    try:
        yield
    finally:
        await db.disconnect()


app = FastAPI(title="MXPaylink Orchestrator", lifespan=lifespan)
app.add_middleware(SecurityHeadersMiddleware)
app.include_router(whatsapp_webhooks_router)
app.include_router(paypal_webhooks_router)


@app.get("/")
async def root():
    return {"message": "MXPaylink Backend is running!"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "10000")))

"""Customer-provisioning backend: POST /create-customer."""

from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from cryptowallet.config import AppConfig
from cryptowallet.errors import GatewayError
from cryptowallet.payments.gateway import IPaymentGateway, StripeGateway
from cryptowallet.util.log import setup_logging

logger = logging.getLogger(__name__)


class CreateCustomerRequest(BaseModel):
    email: str = ""
    name: str = ""


def create_app(gateway: IPaymentGateway) -> FastAPI:
    app = FastAPI(title="cryptowallet backend")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/create-customer")
    def create_customer(body: CreateCustomerRequest):
        try:
            customer_id = gateway.create_customer(body.email, body.name)
        except GatewayError as e:
            return JSONResponse(status_code=500, content={"error": e.message})
        logger.info(f"Created customer {customer_id} for {body.email}")
        return {"customerId": customer_id}

    return app


def main(config: Optional[AppConfig] = None) -> None:
    import uvicorn

    config = config or AppConfig.from_env()
    setup_logging(config.log_level)
    if not config.stripe_secret_key:
        raise SystemExit("CRYPTOWALLET_STRIPE_SECRET_KEY is required")

    app = create_app(StripeGateway(config.stripe_secret_key, timeout_s=config.http_timeout))
    port = int(os.environ.get("PORT", "3000"))
    logger.info(f"Server running on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()

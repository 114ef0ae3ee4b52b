"""
Shelter Service — FastAPI エントリーポイント

保護猫シェルターのファサード。認可・課金・品種情報・価格履歴の
各サービスと猫ストアをオーケストレーションする。

┌──────────┐     ┌─────────────────┐     ┌──────────────────────┐
│  Client  │────▶│ Shelter Service │────▶│ Authorization Svc    │
│          │     │ (orchestrator)  │────▶│ Billing Svc          │
│          │     │                 │────▶│ Cat Info Svc         │
│          │     │                 │────▶│ Cat Exchange Svc     │
└──────────┘     └───────┬─────────┘     └──────────────────────┘
                         │
              ┌──────────▼─────────┐   shelter_events
              │  Shelter DB        │   (Redis Pub/Sub)
              └────────────────────┘
"""

import logging
import os
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from .api import register_error_handlers, router
from .clients import (
    HttpBillingClient,
    HttpBreedInfoClient,
    HttpPriceHistoryClient,
    HttpSessionAuthorizer,
)
from .events import RedisEventPublisher
from .orchestrator import ShelterService
from .store import SqlCatStore, init_schema

DATABASE_URL = os.environ["DATABASE_URL"]
AUTH_SERVICE_URL = os.environ["AUTH_SERVICE_URL"]
BILLING_SERVICE_URL = os.environ["BILLING_SERVICE_URL"]
CAT_INFO_SERVICE_URL = os.environ["CAT_INFO_SERVICE_URL"]
CAT_EXCHANGE_SERVICE_URL = os.environ["CAT_EXCHANGE_SERVICE_URL"]
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379")
HTTP_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT", "10"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

engine = create_async_engine(DATABASE_URL, echo=False)
async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """起動時にスキーマを用意し、協調サービスを組み立てて app.state に置く。"""
    await init_schema(engine)
    redis_pool = aioredis.from_url(REDIS_URL, decode_responses=True)

    app.state.shelter = ShelterService(
        authorizer=HttpSessionAuthorizer(AUTH_SERVICE_URL, HTTP_TIMEOUT),
        store=SqlCatStore(async_session),
        billing=HttpBillingClient(BILLING_SERVICE_URL, HTTP_TIMEOUT),
        breed_info=HttpBreedInfoClient(CAT_INFO_SERVICE_URL, HTTP_TIMEOUT),
        price_history=HttpPriceHistoryClient(CAT_EXCHANGE_SERVICE_URL, HTTP_TIMEOUT),
        events=RedisEventPublisher(redis_pool),
    )
    yield
    await redis_pool.aclose()
    await engine.dispose()


app = FastAPI(title="Cat Shelter Service", lifespan=lifespan)
register_error_handlers(app)
app.include_router(router)

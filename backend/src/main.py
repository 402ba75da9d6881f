import asyncio
import logging
from typing import Optional
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from pydantic import ValidationError

from models import MessageBuffer, PollerRegistry
from schemas import PublishRequest, TopicsResponse, MessagesResponse, StatsResponse
from services import EmulatorClient, PublishError, discovery_loop, publish_message
from utilities import settings, configure_logging, make_error, normalize_attributes, parse_limit
from web import load_index_page

logger = logging.getLogger(__name__)

# Global state
BUFFER = MessageBuffer(settings.max_messages)
EMULATOR = EmulatorClient(settings.emulator_base_url, settings.pubsub_project_id, timeout=settings.emulator_timeout)
POLLERS = PollerRegistry()

# Stats
START_TS = datetime.now(timezone.utc)

# -------------- Lifecycle --------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Project: %s | Emulator: %s", settings.pubsub_project_id, settings.pubsub_emulator_host)
    discovery = asyncio.create_task(discovery_loop(EMULATOR, BUFFER, POLLERS))
    yield
    discovery.cancel()
    try:
        await discovery
    except asyncio.CancelledError:
        pass
    await POLLERS.stop_all()
    await EMULATOR.aclose()

app = FastAPI(title="Pub/Sub UI", lifespan=lifespan)

# -------------- REST endpoints --------------

@app.get("/healthz", response_class=PlainTextResponse)
async def rest_health():
    return "ok"

@app.get("/", response_class=HTMLResponse)
async def rest_index():
    return load_index_page()

@app.get("/api/topics", response_model=TopicsResponse)
async def rest_list_topics():
    return {"topics": await EMULATOR.list_topics()}

@app.post("/api/publish")
async def rest_publish(request: Request):
    # unreadable bodies count as empty, so they fail on the topic check
    try:
        body = await request.json()
    except ValueError:
        body = {}
    try:
        req = PublishRequest.model_validate(body if isinstance(body, dict) else {})
    except ValidationError:
        req = PublishRequest()
    if not req.topic:
        return JSONResponse(status_code=400, content=make_error("topic_required"))

    data = req.data if "data" in req.model_fields_set else {}
    try:
        response = await publish_message(
            EMULATOR, BUFFER, req.topic, req.type, normalize_attributes(req.attributes), data,
        )
    except PublishError as e:
        logger.warning("Publish to %s failed with status %s", req.topic, e.status_code)
        status = e.status_code if e.status_code >= 400 else 502
        return JSONResponse(status_code=status, content=make_error("publish_failed", e.details))
    return {"ok": True, "response": response}

@app.get("/api/messages", response_model=MessagesResponse)
async def rest_messages(subscription: Optional[str] = None, q: Optional[str] = None,
                        limit: Optional[str] = None):
    items = await BUFFER.query(subscription, q, parse_limit(limit))
    return {"count": len(items), "items": items}

@app.post("/api/clear", status_code=204)
async def rest_clear():
    await BUFFER.clear()
    return Response(status_code=204)

@app.get("/api/stats", response_model=StatsResponse)
async def rest_stats():
    uptime_sec = int((datetime.now(timezone.utc) - START_TS).total_seconds())
    return {
        "uptime_sec": uptime_sec,
        "buffered": len(BUFFER),
        "capacity": BUFFER.capacity,
        "pollers": POLLERS.active(),
    }

# -------------- Entry point --------------

def main():
    configure_logging(settings.log_level)
    logger.info("Listening on :%s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())

if __name__ == "__main__":
    main()

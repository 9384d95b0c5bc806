import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from formaloo_flow.config import settings
from formaloo_flow.logger import setup_global_logger
from formaloo_flow.workflows.engine.context import NodeContext
from formaloo_flow.workflows.engine.nodes.registry import NodeRegistry
from formaloo_flow.workflows.engine.static_data import get_static_data_store

setup_global_logger(settings.LOG_LEVEL)

logger = logging.getLogger(__name__)

TRIGGER_NODE_TYPE = "formaloo.trigger"

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)


# Log validation errors for debugging
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.error(f"Validation error for {request.url}: {errors}")
    return JSONResponse(status_code=422, content={"detail": errors})


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post(f"{settings.API_V1_STR}/webhooks/{{workflow_id}}/{{node_id}}")
async def receive_formaloo_webhook(workflow_id: str, node_id: str, request: Request):
    """
    Formaloo callback for one trigger instance.

    Responds as soon as the payload is turned into workflow items.
    """
    raw = await request.body()
    context = NodeContext(
        execution_id=str(uuid.uuid4()),
        workflow_id=workflow_id,
        node_id=node_id,
        config={},
        static_data=get_static_data_store(workflow_id, node_id),
        request_body=raw.decode("utf-8", errors="replace"),
    )

    items = await NodeRegistry.receive_webhook(TRIGGER_NODE_TYPE, context)
    logger.info(f"Received Formaloo webhook for {workflow_id}/{node_id}")
    return {
        "received": True,
        "items": [item.model_dump(by_alias=True) for item in items],
    }

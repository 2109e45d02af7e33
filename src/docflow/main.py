from contextlib import asynccontextmanager
from datetime import datetime

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .analysis.invoker import PROBE_MAX_TOKENS, AnalysisInvoker
from .config import get_settings
from .errors import WorkflowGraphError
from .log import configure_logging
from .models import AgentTestResponse, ExportFormat, HealthResponse, NodeTypeInfo
from .service_layer import create_service_layer
from .workflow.executor import WorkflowExecutor
from .workflow.report import ExecutionRun
from .workflow.schema import ActionConfig, AIAgentConfig, TriggerConfig, Workflow
from .workflow.validation import ValidationReport, validate_workflow

load_dotenv()

settings = get_settings()
configure_logging(settings)

service_layer = create_service_layer(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await service_layer.aclose()


app = FastAPI(
    title="DocFlow API",
    description="Run document analysis workflows built from triggers, AI agents and actions",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

NODE_CATALOG = [
    NodeTypeInfo(
        type="trigger",
        name="Document Trigger",
        description="Starts the workflow and loads chunked text for the selected documents",
        config_schema=TriggerConfig.model_json_schema(by_alias=False),
    ),
    NodeTypeInfo(
        type="aiAgent",
        name="AI Agent",
        description="Analyses each document with structured analysis, falling back to a raw completion",
        config_schema=AIAgentConfig.model_json_schema(by_alias=False),
    ),
    NodeTypeInfo(
        type="action",
        name="Action",
        description="Forwards accumulated results to a downstream step",
        config_schema=ActionConfig.model_json_schema(by_alias=False),
    ),
]

EXPORT_MEDIA_TYPES = {
    "json": ("application/json", "json"),
    "csv": ("text/csv", "csv"),
    "markdown": ("text/markdown", "md"),
}


@app.get("/api/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok", connector_mode=settings.connector_mode)


@app.get("/api/nodes", response_model=list[NodeTypeInfo])
def list_node_types():
    return NODE_CATALOG


@app.post("/api/workflows/validate", response_model=ValidationReport)
def validate_workflow_endpoint(workflow: Workflow):
    return validate_workflow(workflow.nodes, workflow.edges)


async def _run(workflow: Workflow) -> ExecutionRun:
    try:
        return await WorkflowExecutor(service_layer).execute(workflow.nodes, workflow.edges)
    except WorkflowGraphError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/api/workflows/execute")
async def execute_workflow(workflow: Workflow):
    """Run the workflow to completion and return the execution record."""
    run = await _run(workflow)
    return run.to_dict()


@app.post("/api/workflows/execute/export")
async def execute_and_export(workflow: Workflow, format: ExportFormat = "json"):
    """Run the workflow and return the record as a downloadable file."""
    run = await _run(workflow)
    rendered = {"json": run.to_json, "csv": run.to_csv, "markdown": run.to_markdown}[format]()
    media_type, extension = EXPORT_MEDIA_TYPES[format]
    stamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    return Response(
        content=rendered,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="workflow-results-{stamp}.{extension}"'},
    )


@app.post("/api/agents/test", response_model=AgentTestResponse)
async def test_agent_configuration(config: AIAgentConfig):
    """Probe an AI agent configuration with one small completion call."""
    invoker = AnalysisInvoker(service_layer.analysis, service_layer.completion)
    outcome = await invoker.probe(config)
    return AgentTestResponse(
        success=outcome.ok,
        model=config.model_type,
        response=outcome.payload,
        error=outcome.error,
        max_tokens=min(config.max_tokens, PROBE_MAX_TOKENS),
    )

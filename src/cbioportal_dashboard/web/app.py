"""FastAPI web application for cbioportal-dashboard."""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel

from cbioportal_dashboard.client import CBioPortalClient, UpstreamError
from cbioportal_dashboard.config import Config, get_config
from cbioportal_dashboard.context import StudyContext
from cbioportal_dashboard.export import patients_to_csv

logger = logging.getLogger(__name__)

# Global state
_config: Config | None = None
_client: CBioPortalClient | None = None
_sessions: dict[str, StudyContext] = {}  # session_id -> StudyContext


def get_or_create_session(session_id: str) -> StudyContext:
    """Get existing session or create a new one."""
    if session_id not in _sessions:
        if not _config or not _client:
            raise RuntimeError("Server not initialized")
        _sessions[session_id] = StudyContext(_client, _config)

    return _sessions[session_id]


def delete_session(session_id: str) -> None:
    """Delete a session entirely."""
    _sessions.pop(session_id, None)


def require_study(session_id: str) -> StudyContext:
    context = get_or_create_session(session_id)
    if context.current_study is None:
        raise HTTPException(status_code=409, detail="No study loaded")
    return context


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler."""
    global _config, _client

    _config = get_config()
    errors = _config.validate()
    if errors:
        raise RuntimeError(f"Configuration errors: {', '.join(errors)}")

    _client = CBioPortalClient(_config)
    await _client.initialize()

    yield

    if _client:
        await _client.close()
    _sessions.clear()


app = FastAPI(
    title="cbioportal-dashboard",
    description="Dashboard API over the cBioPortal cancer genomics REST API",
    version="0.1.0",
    lifespan=lifespan,
)


class NewSessionResponse(BaseModel):
    """Response for creating a new session."""

    session_id: str


@app.post("/api/session/new", response_model=NewSessionResponse)
async def create_session() -> NewSessionResponse:
    """Create a new dashboard session."""
    session_id = str(uuid.uuid4())
    get_or_create_session(session_id)
    return NewSessionResponse(session_id=session_id)


@app.delete("/api/session/{session_id}")
async def end_session(session_id: str) -> dict:
    delete_session(session_id)
    return {"deleted": session_id}


@app.get("/api/health")
async def health() -> dict:
    """Health check endpoint."""
    info = await _client.check_api_health() if _client else None
    return {
        "status": "healthy",
        "upstream": _client.base_url if _client else None,
        "upstream_reachable": info is not None,
        "portal_version": info.portal_version if info else None,
        "active_sessions": len(_sessions),
    }


@app.get("/api/session/{session_id}/studies")
async def list_studies(session_id: str, keyword: str | None = None, limit: int | None = None) -> dict:
    """List public studies, PanCancer Atlas and TCGA first."""
    context = get_or_create_session(session_id)
    await context.load_studies()
    if context.error:
        raise HTTPException(status_code=502, detail=context.error)

    studies = context.studies
    if keyword:
        keyword_lower = keyword.lower()
        studies = [
            s
            for s in studies
            if keyword_lower in s.name.lower()
            or keyword_lower in s.description.lower()
            or keyword_lower in s.study_id.lower()
        ]
    if limit is not None:
        studies = studies[:limit]

    return {"total_count": len(studies), "studies": [s.to_dict() for s in studies]}


@app.post("/api/session/{session_id}/study/{study_id}")
async def load_study(session_id: str, study_id: str, force: bool = False) -> dict:
    """Load a study into the session and return its overview."""
    context = get_or_create_session(session_id)
    await context.load_study_data(study_id, force=force)

    overview = context.overview()
    if context.error or overview is None:
        raise HTTPException(status_code=502, detail=context.error or "Failed to load study data")

    return {
        **overview.to_dict(),
        "hasSurvivalData": context.has_survival_data,
        "cancerTypes": context.cancer_types,
    }


@app.get("/api/session/{session_id}/charts/distribution/{attribute_id}")
async def distribution_chart(session_id: str, attribute_id: str) -> dict:
    return require_study(session_id).distribution(attribute_id).to_dict()


@app.get("/api/session/{session_id}/charts/age-histogram")
async def age_histogram_chart(session_id: str) -> dict:
    return require_study(session_id).age_histogram().to_dict()


@app.get("/api/session/{session_id}/charts/survival")
async def survival_chart(session_id: str) -> dict:
    """Kaplan-Meier overall survival for the loaded study."""
    context = require_study(session_id)
    curve = context.survival_curve()
    return {**curve.to_dict(), "hasSurvivalData": context.has_survival_data}


@app.get("/api/session/{session_id}/mutations/{gene_symbol}")
async def mutation_summary(session_id: str, gene_symbol: str) -> dict:
    context = require_study(session_id)
    result = await context.search_mutations(gene_symbol)
    if not result.success or result.data is None:
        raise HTTPException(status_code=502 if result.retryable else 404, detail=result.error)
    return result.data.to_dict()


@app.get("/api/session/{session_id}/export")
async def export_csv(session_id: str) -> Response:
    """Download the loaded study's patients as CSV."""
    context = require_study(session_id)
    filename = f"{context.current_study_id}_patients.csv"

    return Response(
        content=patients_to_csv(context.patients),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )


@app.api_route("/api/cbioportal/{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
async def cbioportal_proxy(path: str, request: Request) -> Any:
    """Pass a request through to the upstream API."""
    if not _client:
        raise HTTPException(status_code=503, detail="Server not initialized")

    body = None
    if request.method in ("POST", "PUT") and await request.body():
        try:
            body = await request.json()
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Request body is not valid JSON") from e

    try:
        return await _client.proxy(
            request.method,
            path,
            params=request.query_params.multi_items(),
            body=body,
        )
    except UpstreamError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e


def run_server(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Run the web server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from teamup.changes import DeriveFromMission, apply_change
from teamup.config import StorageSettings
from teamup.consistency import check_consistency
from teamup.errors import StorageError, StorageWriteError
from teamup.export_utils import export_team_json
from teamup.storage_context import StorageContext
from teamup.team_templates import TEAM_TEMPLATES
from teamup.validation import validate_completeness, validate_references, validate_structure
from teamup.wizard_state import WizardState

logger = logging.getLogger("teamup_server")


def _storage(request: Request) -> StorageContext:
    return request.app.state.storage


def create_app(storage: Optional[StorageContext] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.storage = storage or StorageContext.from_settings(StorageSettings.from_env())
        try:
            await app.state.storage.initialize_example_team()
        except StorageError as e:
            logger.warning("Bootstrap failed, continuing without demonstration team: %s", e)
        yield

    app = FastAPI(lifespan=lifespan)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Allow all origins for dev
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/teams")
    async def list_teams(request: Request):
        teams = await _storage(request).list_teams()
        return [
            {"id": t.id, "name": t.name, "updatedAt": t.updated_at.isoformat()}
            for t in teams
        ]

    @app.get("/teams/{team_id}")
    async def load_team(team_id: str, request: Request):
        state = await _storage(request).load_team(team_id)
        if state is None:
            raise HTTPException(status_code=404, detail=f"Team {team_id} not found")
        return JSONResponse(content=state.to_wire())

    @app.post("/teams")
    async def save_team(state: WizardState, request: Request):
        result = await _storage(request).save_team(state)
        body = result.model_dump(mode="json", by_alias=True)
        if result.success:
            return JSONResponse(content=body)
        status = 422 if (result.missing or result.issues) else 502
        return JSONResponse(status_code=status, content=body)

    @app.delete("/teams/{team_id}", status_code=204)
    async def delete_team(team_id: str, request: Request):
        try:
            await _storage(request).delete_team(team_id)
        except StorageWriteError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return Response(status_code=204)

    @app.get("/teams/{team_id}/export")
    async def export_team(team_id: str, request: Request):
        state = await _storage(request).load_team(team_id)
        if state is None:
            raise HTTPException(status_code=404, detail=f"Team {team_id} not found")
        return Response(
            content=export_team_json(state),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="team-{team_id}.json"'},
        )

    @app.post("/validate")
    async def validate(state: WizardState):
        completeness = validate_completeness(state)
        report = check_consistency(state)
        return {
            "issues": [str(i) for i in validate_structure(state) + validate_references(state)],
            "isComplete": completeness.is_complete,
            "missing": completeness.missing,
            "coveragePct": report.coverage_pct,
            "conflicts": report.conflicts,
        }

    @app.get("/templates")
    async def list_templates():
        return [
            {"id": t.id, "name": t.name, "description": t.description, "icon": t.icon}
            for t in TEAM_TEMPLATES.values()
        ]

    @app.post("/derive")
    async def derive(state: WizardState):
        return JSONResponse(content=apply_change(state, DeriveFromMission()).to_wire())

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

from fastapi import APIRouter
from fastapi import HTTPException
from fastapi import Query
from fastapi import Request

from dashboard.api.schemas.dashboard import DashboardResponse
from dashboard.github_api import UpstreamClient
from dashboard.services.dashboard_service import DashboardSession
from dashboard.services.dashboard_service import GitHubAPIError
from dashboard.services.dashboard_service import UserNotFoundError
from dashboard.services.dashboard_service import build_dashboard


router = APIRouter()


@router.get("/")
async def root() -> dict[str, str]:
    """Return a basic service greeting."""

    return {"message": "GitHub activity dashboard"}


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Return liveness probe response for health checks."""

    return {"status": "ok"}


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    request: Request,
    users: list[str] | None = Query(default=None),
    years: list[int] | None = Query(default=None),
) -> dict[str, object]:
    """Return combined contribution grids for the configured users."""

    settings = request.app.state.settings
    async with UpstreamClient.from_settings(
        settings, request.app.state.cache, transport=request.app.state.transport
    ) as client:
        session = DashboardSession.from_settings(
            settings, client, users=users, years=years
        )
        try:
            return await build_dashboard(session)
        except UserNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except GitHubAPIError as exc:
            raise HTTPException(
                status_code=502, detail="GitHub API request failed"
            ) from exc

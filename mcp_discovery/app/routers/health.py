from fastapi import APIRouter


def create_health_router(client_name: str, client_version: str, mcp_version: str) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health() -> dict[str, object]:
        return {
            "status": "ok",
            "client_name": client_name,
            "client_version": client_version,
            "mcp_version": mcp_version,
        }

    return router

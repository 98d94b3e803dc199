"""Health check endpoint.

Called by load balancers; says only that the process is serving requests.
"""

from fastapi import APIRouter, Response

router = APIRouter()


@router.get("/health")
async def health() -> Response:
    """200 with an empty body."""
    return Response(status_code=200)

import uuid
from collections.abc import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_INBOUND_LENGTH = 128


async def request_id_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    # Honour an upstream id (load balancer, client) unless it is absurdly long.
    inbound = request.headers.get(REQUEST_ID_HEADER, "")
    request_id = inbound if 0 < len(inbound) <= _MAX_INBOUND_LENGTH else uuid.uuid4().hex
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response

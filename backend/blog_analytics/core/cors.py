from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response


class PreflightCORSMiddleware(CORSMiddleware):
    """
    CORSMiddleware that answers accepted preflight requests with 204 No Content.

    Rejected preflights keep Starlette's 400 response, which carries no
    Access-Control-Allow-Origin header.
    """

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response

        headers = {
            key: value
            for key, value in response.headers.items()
            if key.lower().startswith("access-control-") or key.lower() == "vary"
        }
        return Response(status_code=204, headers=headers)

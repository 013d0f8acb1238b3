from fastapi import Response


def preflight_response(methods: str, headers: str, allow_credentials: bool = False) -> Response:
    cors_headers = {
        "Access-Control-Allow-Origin":  "*",
        "Access-Control-Allow-Methods": methods,
        "Access-Control-Allow-Headers": headers,
        "Access-Control-Max-Age":       "86400",
    }
    if allow_credentials:
        cors_headers["Access-Control-Allow-Credentials"] = "true"
    return Response(status_code=204, headers=cors_headers)

from datetime import datetime, timezone
from typing import List, Optional

from fastapi.responses import JSONResponse

from cleanplate.app.services.url_parsing.errors import ExtractionError


def error_response(
    status_code: int,
    code: str,
    user_message: str,
    suggestions: Optional[List[str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "code": code,
            "userMessage": user_message,
            "suggestions": list(suggestions or []),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def extraction_error_response(exc: ExtractionError) -> JSONResponse:
    """User-facing response for a failed extraction; the internal message is not exposed."""
    return error_response(exc.status_code, exc.error_code, exc.user_message, exc.suggestions)

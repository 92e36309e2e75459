"""
FastAPI backend for chat export parsing.

The API is stateless: every request carries the export text and its
options, and the response carries the parsed rows. Nothing is stored.

Errors:
    Detection failures and bad options come back as 422 with a body
    {"error": <class>, "stage": <stage>, "message": <text>}.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from chat_export import __version__
from chat_export.config import ParseConfig
from chat_export.errors import ChatParseError
from chat_export.indicators import load_indicator_table
from chat_export.pipeline import parse_chat

logger = logging.getLogger(__name__)


class ParseRequest(BaseModel):
    """Body of POST /parse: export text plus optional parse options."""

    text: str = Field(..., description="Whole chat export as text")
    platform: Optional[str] = None
    language: Optional[str] = None
    smiley_strategy: Optional[str] = None
    url_mode: Optional[str] = None
    anon_mode: Optional[str] = None
    order: Optional[str] = None
    newline_placeholder: Optional[str] = None
    media_omitted_placeholder: Optional[str] = None
    consent_text: Optional[str] = None
    slash_date_order: Optional[str] = None


app = FastAPI(
    title="Chat Export Parser API",
    version=__version__,
    description="Parses exported chat transcripts into one row per message.",
)

# Local dev CORS defaults
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        os.getenv("CHAT_EXPORT_ALLOWED_ORIGIN", "http://127.0.0.1:5173"),
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _unprocessable(error: str, stage: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"error": error, "stage": stage, "message": message},
    )


@app.get("/health")
def health() -> Dict[str, Any]:
    """Health check - also verifies the indicator table loads."""
    table = load_indicator_table()
    return {
        "status": "ok",
        "version": __version__,
        "platforms": sorted(table.platforms),
        "languages": list(table.languages),
    }


@app.post("/parse")
def parse(request: ParseRequest) -> Dict[str, Any]:
    """
    Parse an export.

    Returns:
        platform, language, columns, rows (JSON values) and diagnostics.
    """
    options = request.model_dump(exclude={"text"}, exclude_none=True)
    try:
        config = ParseConfig.from_mapping(options)
        result = parse_chat(request.text, config=config)
    except ChatParseError as e:
        logger.info(f"Parse rejected at {e.stage}: {e.message}")
        raise _unprocessable(type(e).__name__, e.stage, e.message)
    except ValueError as e:
        raise _unprocessable(type(e).__name__, "configuration", str(e))

    return {
        "platform": result.platform,
        "language": result.language,
        "columns": list(result.table.columns),
        "rows": result.table.to_json_rows(),
        "diagnostics": result.diagnostics.to_dict(),
    }

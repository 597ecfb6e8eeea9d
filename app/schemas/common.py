from __future__ import annotations

"""
Error envelope shared by every endpoint (documented in OpenAPI).

    {"status": "error", "message": "...", "errors"?: {field: [messages]}}
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel


class ErrorEnvelope(BaseModel):
    status: Literal["error"] = "error"
    message: str
    errors: Optional[Dict[str, List[str]]] = None

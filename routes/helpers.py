"""
Shared request helpers for route blueprints.

The storefront session identity is issued elsewhere and arrives as a cookie;
routes only read it.
"""

from typing import Optional

import bleach
from flask import current_app, request

from models.cart import SessionContext


def current_session() -> Optional[SessionContext]:
    """Session carried by the request cookie, or None."""
    cookie_name = current_app.config.get("STOREFRONT_SESSION_COOKIE", "fab_session_id")
    session_id = (request.cookies.get(cookie_name) or "").strip()
    if not session_id:
        return None
    return SessionContext(session_id)


def sanitize_text(text: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Sanitize user input text to prevent XSS and injection attacks.

    Args:
        text: Raw input text
        max_length: Optional maximum length to enforce

    Returns:
        Sanitized text safe for storage and display
    """
    if not text:
        return ""
    text = bleach.clean(str(text).strip(), tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text

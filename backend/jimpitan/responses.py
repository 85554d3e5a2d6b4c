# Overview: JSON response envelope shared by all API routes.

"""
Every API response has the same shape:

    {"status": "success" | "error", "message": str, "data": ...}
"""

from __future__ import annotations

from flask import jsonify

from .errors import JimpitanError


def success(data=None, message: str = "OK", status_code: int = 200):
    return jsonify({"status": "success", "message": message, "data": data}), status_code


def error(message: str, status_code: int, data=None):
    return jsonify({"status": "error", "message": message, "data": data}), status_code


def from_exception(exc: JimpitanError):
    """Render a domain error; details (e.g. bulk failures) go into data."""
    return error(exc.message, exc.status_code, exc.details)

# fyht4/utils/json_body.py
from flask import request


def json_body() -> dict:
    """Cuerpo JSON como dict; {} si falta, no parsea o no es un objeto."""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}

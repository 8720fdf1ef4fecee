import logging, os
from datetime import datetime, timezone

from flask import has_request_context, request, session


class RequestContextFilter(logging.Filter):
    """Inyecta user_id y path si hay request activo."""
    def filter(self, record):
        if has_request_context():
            record.user_id = session.get("uid")
            record.path = getattr(request, "path", None)
        else:
            # fuera de Flask (scripts, tests)
            if not hasattr(record, "user_id"):
                record.user_id = None
            if not hasattr(record, "path"):
                record.path = None
        return True


class MongoHandler(logging.Handler):
    """Escribe en la colección logs_app; si falla, usa archivo local."""
    def __init__(self, mongo, fallback_path="logs/app.log", level=logging.NOTSET):
        super().__init__(level)
        self.mongo = mongo
        self.fallback_path = fallback_path

    def emit(self, record):
        doc = {
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
            "user_id": getattr(record, "user_id", None),
            "path": getattr(record, "path", None),
            # Si se pasó extra={"extra_dict": {...}} lo guardamos tal cual
            "extra": getattr(record, "extra_dict", None),
            "created_at": datetime.now(timezone.utc),
        }
        try:
            self.mongo.db.logs_app.insert_one(doc)
        except Exception:
            self._fallback(record)

    def _fallback(self, record):
        try:
            folder = os.path.dirname(self.fallback_path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            with open(self.fallback_path, "a", encoding="utf-8") as f:
                ts = datetime.now(timezone.utc).isoformat()
                f.write(f"[{ts}] {record.levelname} {record.name} uid={getattr(record,'user_id',None)} path={getattr(record,'path',None)}: {record.getMessage()}\n")
        except OSError:
            self.handleError(record)


def setup_logging(app):
    """Adjunta handler de Mongo con filtro de contexto a app.logger"""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    handler = MongoHandler(app.extensions["mongo"], app.config.get("LOG_FALLBACK_PATH", "logs/app.log"))
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(fmt)

    # app.logger es compartido entre instancias de la app: un solo MongoHandler
    for old in [h for h in app.logger.handlers if isinstance(h, MongoHandler)]:
        app.logger.removeHandler(old)
    app.logger.addHandler(handler)
    app.logger.setLevel(level)

    # Log de acceso mínimo: solo errores
    @app.after_request
    def _after(resp):
        if resp.status_code >= 400:
            app.logger.warning("HTTP %s en %s %s", resp.status_code, request.method, request.path,
                               extra={"extra_dict": {"status": resp.status_code}})
        return resp

    return handler

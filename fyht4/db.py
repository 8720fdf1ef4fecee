# fyht4/db.py
import threading

from flask import current_app
from pymongo import MongoClient

DEFAULT_DB_NAME = "fyht4"


class Mongo:
    """Handle de conexión propiedad de la app (app.extensions["mongo"]).

    El cliente se crea la primera vez que se pide; los hilos que llegan a la vez
    esperan al lock y reciben el mismo cliente.
    """

    def __init__(self, uri: str, db_name: str | None = None, client_cls=MongoClient):
        if not uri:
            raise RuntimeError("Missing MONGODB_URI")
        self._uri = uri
        self._db_name = db_name
        self._client_cls = client_cls
        self._client = None
        self._lock = threading.Lock()

    @property
    def client(self):
        if self._client is not None:
            return self._client
        with self._lock:
            if self._client is None:
                self._client = self._client_cls(self._uri)
        return self._client

    @property
    def db(self):
        if self._db_name:
            return self.client[self._db_name]
        return self.client.get_default_database(default=DEFAULT_DB_NAME)

    def close(self):
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None


def init_db(app) -> Mongo:
    mongo = Mongo(
        app.config.get("MONGODB_URI"),
        db_name=app.config.get("MONGODB_DB"),
        client_cls=app.config.get("MONGO_CLIENT_CLASS", MongoClient),
    )
    app.extensions["mongo"] = mongo
    return mongo


def get_mongo() -> Mongo:
    return current_app.extensions["mongo"]


def get_db():
    return get_mongo().db

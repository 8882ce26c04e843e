from fastapi import Request

from pintodo.core.settings import Settings
from pintodo.security.attempts import AttemptTracker
from pintodo.security.sessions import SessionStore


def client_ip(request: Request) -> str:
    client = request.client
    return client.host if client and client.host else "0.0.0.0"


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tracker(request: Request) -> AttemptTracker:
    return request.app.state.attempts


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions
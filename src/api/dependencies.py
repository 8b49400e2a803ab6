"""
FastAPI dependencies resolving the services built in the app lifespan.
"""

from fastapi import Request

from config.settings import Settings
from search.container import SearchServices


def get_services(request: Request) -> SearchServices:
    return request.app.state.services


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings

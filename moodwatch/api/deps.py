from fastapi import Request

from moodwatch.services.discovery import DiscoveryService
from moodwatch.services.result_cache import ResultCache


def get_result_cache(request: Request) -> ResultCache:
    return request.app.state.result_cache


def get_discovery_service(request: Request) -> DiscoveryService:
    return request.app.state.discovery_service

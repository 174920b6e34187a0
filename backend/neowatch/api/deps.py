from fastapi import Request

from neowatch.core.context import NeoContext


def get_context(request: Request) -> NeoContext:
    return request.app.state.context

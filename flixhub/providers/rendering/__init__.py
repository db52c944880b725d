"""
Rendering support for providers that need a real browser.
"""

from flixhub.providers.rendering.context import (
    RENDER_THREAD_NAME,
    RenderContext,
    RenderedPage,
    Renderer,
    RenderingProvider,
    is_render_thread,
    require_render_thread,
)
from flixhub.providers.rendering.selenium_renderer import SeleniumRenderer

__all__ = [
    "RENDER_THREAD_NAME",
    "RenderContext",
    "RenderedPage",
    "Renderer",
    "RenderingProvider",
    "is_render_thread",
    "require_render_thread",
    "SeleniumRenderer",
]

# recanon/client/__init__.py
# Renderer HTTP client and its configuration.

from recanon.client.config import RendererConfig
from recanon.client.renderer_client import RenderResult, RendererClient, VerifyResult

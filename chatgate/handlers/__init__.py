"""
Handlers package - request orchestration for the chat endpoint.
"""

from chatgate.handlers.gateway_handler import GatewayDependencies, GatewayHandler, GatewayState

__all__ = ["GatewayDependencies", "GatewayHandler", "GatewayState"]

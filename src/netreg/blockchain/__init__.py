"""Blockchain integration for netreg."""

from .probe import EndpointStatus, ProbeResult, RpcProbe

__all__ = ["EndpointStatus", "ProbeResult", "RpcProbe"]

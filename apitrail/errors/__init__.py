"""Error funnel module."""

from .funnel import MAX_STACK_CHARS, ErrorFunnel, IErrorFunnel

__all__ = ["MAX_STACK_CHARS", "ErrorFunnel", "IErrorFunnel"]

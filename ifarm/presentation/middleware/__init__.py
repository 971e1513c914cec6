"""Presentation middleware."""

from ifarm.presentation.middleware.correlation import CorrelationIDMiddleware

__all__ = ["CorrelationIDMiddleware"]

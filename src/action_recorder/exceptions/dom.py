"""
DOM model exceptions.
"""

from action_recorder.exceptions.base import ActionRecorderError


class DOMError(ActionRecorderError):
    """Base exception for DOM model errors."""
    pass


class CrossOriginAccessError(DOMError):
    """
    A window tried to read another window's document across origins.
    
    This is the expected outcome at cross-origin frame boundaries and is
    caught by the context tracer rather than propagated.
    """
    
    def __init__(self, message: str, accessor_origin: str | None = None, target_origin: str | None = None):
        super().__init__(message, {"accessor_origin": accessor_origin, "target_origin": target_origin})
        self.accessor_origin = accessor_origin
        self.target_origin = target_origin


class DetachedNodeError(DOMError):
    """The node is not connected to any document or shadow root."""
    pass


class XPathEvaluationError(DOMError):
    """
    An XPath expression could not be evaluated.
    
    Raised for syntactically invalid expressions.
    """
    
    def __init__(self, message: str, expression: str):
        super().__init__(message, {"expression": expression})
        self.expression = expression

"""
Custom exceptions for the loan matching engine

This module defines a hierarchy of exceptions used throughout the matcher
to handle various error conditions in a structured and meaningful way.

A batch with no feasible match is not an error and has no exception here:
it is reported as a normal outcome with zero transfers.
"""


class BaseMatchingEngineException(Exception):
    """Base exception class for all matching engine exceptions."""

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInputException(BaseMatchingEngineException):
    """Raised when a batch or one of its orders is rejected before enumeration."""
    pass


class InvalidOrderException(InvalidInputException):
    """Raised when an order contains invalid or self-contradictory parameters."""
    pass


class DuplicateOrderException(InvalidInputException):
    """Raised when two orders in the same batch share an order id."""
    pass


class BatchSizeExceededException(InvalidInputException):
    """Raised when a batch is larger than the configured partition search bound."""
    pass


class EmptyResultSetException(BaseMatchingEngineException):
    """Raised when the best-result selector is called with no candidates."""
    pass


class ArithmeticOverflowException(BaseMatchingEngineException):
    """Raised when an amount or rate exceeds the representable settlement range."""
    pass


class MaturityMismatchException(InvalidInputException):
    """Raised when a batch handed to the engine spans more than one maturity."""
    pass

"""Centralized message codes and default messages for API responses."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel


class MessageCode(str, Enum):
    """Centralized message codes for API responses."""

    # Success codes
    SUCCESS = "SUCCESS"
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"

    # Authentication
    AUTH_REQUIRED = "AUTH_REQUIRED"

    # Hotspot lifecycle
    HOTSPOT_CREATED = "HOTSPOT_CREATED"
    HOTSPOT_UPDATED = "HOTSPOT_UPDATED"
    HOTSPOT_DELETED = "HOTSPOT_DELETED"
    HOTSPOT_JOINED = "HOTSPOT_JOINED"
    HOTSPOT_LEFT = "HOTSPOT_LEFT"
    HOTSPOT_NOT_FOUND = "HOTSPOT_NOT_FOUND"
    HOTSPOT_FORBIDDEN = "HOTSPOT_FORBIDDEN"
    HOTSPOT_INACTIVE = "HOTSPOT_INACTIVE"
    HOTSPOT_FULL = "HOTSPOT_FULL"
    HOTSPOT_ALREADY_MEMBER = "HOTSPOT_ALREADY_MEMBER"
    HOTSPOT_NOT_MEMBER = "HOTSPOT_NOT_MEMBER"
    HOTSPOT_INVALID_SCHEDULE = "HOTSPOT_INVALID_SCHEDULE"
    HOTSPOT_CAPACITY_BELOW_OCCUPANCY = "HOTSPOT_CAPACITY_BELOW_OCCUPANCY"

    # Search
    SEARCH_COMPLETED = "SEARCH_COMPLETED"
    INVALID_QUERY = "INVALID_QUERY"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    # Service errors
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"


# Default messages for each message code
DEFAULT_MESSAGES = {
    # Success messages
    MessageCode.SUCCESS: "Operation completed successfully",
    MessageCode.CREATED: "Resource created successfully",
    MessageCode.UPDATED: "Resource updated successfully",
    MessageCode.DELETED: "Resource deleted successfully",
    # Authentication
    MessageCode.AUTH_REQUIRED: "Authentication required",
    # Hotspot lifecycle
    MessageCode.HOTSPOT_CREATED: "Hotspot created successfully",
    MessageCode.HOTSPOT_UPDATED: "Hotspot updated successfully",
    MessageCode.HOTSPOT_DELETED: "Hotspot deleted successfully",
    MessageCode.HOTSPOT_JOINED: "Joined hotspot successfully",
    MessageCode.HOTSPOT_LEFT: "Left hotspot successfully",
    MessageCode.HOTSPOT_NOT_FOUND: "Hotspot not found",
    MessageCode.HOTSPOT_FORBIDDEN: "Only the creator can modify this hotspot",
    MessageCode.HOTSPOT_INACTIVE: "Hotspot is not active",
    MessageCode.HOTSPOT_FULL: "Hotspot is at maximum capacity",
    MessageCode.HOTSPOT_ALREADY_MEMBER: "User is already in this hotspot",
    MessageCode.HOTSPOT_NOT_MEMBER: "User is not in this hotspot",
    MessageCode.HOTSPOT_INVALID_SCHEDULE: "End time cannot be before scheduled time",
    MessageCode.HOTSPOT_CAPACITY_BELOW_OCCUPANCY: "Max capacity cannot be less than current occupancy",
    # Search
    MessageCode.SEARCH_COMPLETED: "Search completed successfully",
    MessageCode.INVALID_QUERY: "Invalid search query",
    # Validation errors
    MessageCode.VALIDATION_ERROR: "Validation failed",
    MessageCode.INVALID_INPUT: "Invalid input provided",
    # Service errors
    MessageCode.STORE_UNAVAILABLE: "Hotspot storage is temporarily unavailable",
    # Generic errors
    MessageCode.INTERNAL_ERROR: "Internal server error",
    MessageCode.INTERNAL_SERVER_ERROR: "Internal server error",
    MessageCode.BAD_REQUEST: "Bad request",
    MessageCode.NOT_FOUND: "Resource not found",
}

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Base API response model with consistent structure and proper typing."""

    message_code: MessageCode
    message: str
    data: T | None = None

    @classmethod
    def success(
        cls,
        message_code: MessageCode = MessageCode.SUCCESS,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create a success response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Success"),
            data=data,
        )


def get_default_message(message_code: MessageCode) -> str:
    """Get default message for a message code."""
    return DEFAULT_MESSAGES.get(message_code, "Operation completed")

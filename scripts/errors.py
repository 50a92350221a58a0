#!/usr/bin/env python3
"""
NFT Price Fetcher — User-Friendly Error Messages

Converts technical ledger/API errors into user-friendly messages with actionable suggestions.
"""

import re
from typing import Optional, Dict, Any


# =============================================================================
# Error Message Mapping
# =============================================================================

ERROR_PATTERNS = {
    # Input errors
    "invalid address": {
        "message": "Invalid collection address format",
        "reasons": [
            "Address is not 0x followed by 40 hex characters",
            "Unknown collection alias",
        ],
        "suggestion": "Use the full contract address or a known alias (e.g. blitmap)",
    },
    "token id": {
        "message": "Invalid token ID",
        "reasons": [
            "Token ID is negative",
            "Token ID is not an integer",
        ],
        "suggestion": "Pass a non-negative integer token ID",
    },

    # Ledger data errors
    "malformed": {
        "message": "Ledger returned malformed sale data",
        "reasons": [
            "Indexer returned an unexpected response shape",
            "Amount field is negative or not an integer",
            "Indexer API version changed",
        ],
        "suggestion": "Check the ledger API URL and version in config",
    },

    # API errors
    "unauthorized": {
        "message": "Ledger API rejected the credentials",
        "reasons": [
            "API key is missing or invalid",
            "API key expired",
        ],
        "suggestion": "Set a valid key: utils.py config set ledger_api_key <key>",
    },
    "rate limit": {
        "message": "Ledger API rate limit exceeded",
        "reasons": [
            "Too many requests in a short period",
            "No API key configured",
        ],
        "suggestion": "Wait a moment or configure an API key",
    },
    "not found": {
        "message": "Item not known to the ledger",
        "reasons": [
            "Collection address is wrong",
            "Token ID does not exist in this collection",
            "API endpoint may have changed",
        ],
        "suggestion": "Check the collection address and token ID",
    },
    "timeout": {
        "message": "Request timeout",
        "reasons": [
            "Network connection is slow",
            "Ledger API is overloaded",
            "Request took too long",
        ],
        "suggestion": "Try again in a few moments or raise http.timeout",
    },
    "connection error": {
        "message": "Connection error",
        "reasons": [
            "No internet connection",
            "Ledger API is down",
            "Network firewall blocking request",
        ],
        "suggestion": "Check your internet connection and try again",
    },
}


# =============================================================================
# Error Formatting Functions
# =============================================================================

def format_error(
    error: Any,
    error_type: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Convert technical error into user-friendly format.

    Args:
        error: Error message (string, dict, or exception)
        error_type: Type of error (e.g., "lookup", "input")
        context: Additional context (e.g., {"collection": "0x...", "token_id": 1})

    Returns:
        dict with formatted error message
    """
    error_msg = extract_error_message(error)
    error_lower = error_msg.lower()

    # Find matching pattern
    matched_pattern = None
    for pattern, info in ERROR_PATTERNS.items():
        if pattern in error_lower:
            matched_pattern = info
            break

    result = {
        "success": False,
        "error": matched_pattern["message"] if matched_pattern else error_msg,
    }

    if matched_pattern:
        result["reasons"] = matched_pattern.get("reasons", [])
        result["suggestion"] = matched_pattern.get("suggestion", "")

    if context:
        if "collection" in context:
            result["collection"] = context["collection"]
        if "token_id" in context:
            result["token_id"] = context["token_id"]

    if error_type:
        result["error_type"] = error_type
    if matched_pattern:
        result["raw_error"] = error_msg

    return result


def extract_error_message(error: Any) -> str:
    """Extract error message from various error types."""
    if isinstance(error, str):
        return error
    elif isinstance(error, dict):
        inner = error.get("error") or error.get("message")
        return str(inner) if inner else str(error)
    elif isinstance(error, BaseException):
        # KeyError/LookupError wrap the message in args[0]
        return str(error.args[0]) if error.args else type(error).__name__
    else:
        return str(error)


def format_lookup_error(
    error: Any,
    collection: Optional[str] = None,
    token_id: Optional[int] = None,
) -> Dict[str, Any]:
    """Format a ledger lookup failure."""
    context = {}
    if collection is not None:
        context["collection"] = collection
    if token_id is not None:
        context["token_id"] = token_id
    return format_error(error, error_type="lookup", context=context or None)


def format_input_error(error: Any) -> Dict[str, Any]:
    """Format an invalid argument error."""
    return format_error(error, error_type="input")


# =============================================================================
# Helper Functions
# =============================================================================

def is_api_unavailable_error(error: Any) -> bool:
    """Check if error is transient and the query is worth retrying."""
    error_msg = extract_error_message(error).lower()
    return (
        "timeout" in error_msg
        or "connection error" in error_msg
        or "http 429" in error_msg
        or re.search(r"\bhttp 5\d\d\b", error_msg) is not None
    )


"""Extraction failures.

Every class here is terminal for a single extraction attempt. The core
raises them; the API layer turns them into a status code and a
user-facing message using the attributes each class carries.
"""

from typing import List, Optional


class ExtractionError(Exception):
    """Base class for pipeline-terminal failures."""

    error_code = "SERVER_ERROR"
    status_code = 500
    user_message = "An unexpected error occurred while processing the recipe."
    suggestions: List[str] = []


class InvalidUrl(ExtractionError):
    error_code = "INVALID_URL"
    status_code = 400
    user_message = "Please provide a valid URL starting with http:// or https://"


class ForbiddenHost(ExtractionError):
    """The URL points at a private, loopback or otherwise internal address."""

    error_code = "FORBIDDEN"
    status_code = 403
    user_message = "Cannot access internal or private network addresses."


class NetworkError(ExtractionError):
    """Transport-level failure: DNS, refused connection, timeout, redirect loop."""

    error_code = "NETWORK_ERROR"
    status_code = 502
    user_message = "Unable to access the recipe website. It may be temporarily unavailable."
    suggestions = [
        "Check if the website is working in your browser",
        "Try again in a few moments",
    ]


class SslVerificationFailed(NetworkError):
    error_code = "SSL_VERIFICATION_FAILED"
    user_message = "The recipe website's security certificate could not be verified."
    suggestions = [
        "Check that the URL uses the site's correct address",
        "The site may have a misconfigured or expired certificate",
    ]


class HttpError(ExtractionError):
    error_code = "HTTP_ERROR"
    status_code = 502
    user_message = "The recipe website returned an error."
    suggestions = ["Check that the URL is correct", "Try again in a few moments"]

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        super().__init__(message or f"Failed to fetch URL (HTTP {status})")


class AccessDenied(HttpError):
    """The server answered 403 or 429."""

    error_code = "ACCESS_DENIED"
    status_code = 403
    user_message = "This website is blocking automated access."
    suggestions = [
        "Try copying the recipe manually",
        "Look for a print-friendly version of the page",
        "Some sites actively prevent recipe extraction",
    ]

    def __init__(self, status: int):
        super().__init__(status, f"Access denied by website (HTTP {status})")


class BotChallengeDetected(ExtractionError):
    error_code = "CLOUDFLARE_BLOCK"
    status_code = 403
    user_message = "This website uses bot protection that cannot be bypassed."
    suggestions = [
        "Visit the page in your browser and manually copy the recipe",
        "Look for a print-friendly version (often bypasses protection)",
        "Try the website's mobile version which may have lighter protection",
    ]


class JavaScriptRequired(ExtractionError):
    error_code = "JAVASCRIPT_REQUIRED"
    status_code = 422
    user_message = "This page requires JavaScript to load recipe content."
    suggestions = [
        "This site loads recipes dynamically and cannot be scraped",
        "Try looking for a print version of the page",
        "Copy the recipe content manually from your browser",
    ]


class NoRecipeFound(ExtractionError):
    error_code = "NO_RECIPE_FOUND"
    status_code = 404
    user_message = "No recipe content detected on this page."
    suggestions = [
        "Make sure the URL points to a recipe page (not a blog post or listing)",
        'Try clicking "Jump to Recipe" and using that URL',
        "Some sites may not be supported yet",
    ]

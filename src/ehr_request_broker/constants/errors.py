"""Error codes and messages used by the request broker."""


class ErrorCodes:
    """Error codes for API responses."""

    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
    INVALID_STATE = "INVALID_STATE"
    REQUEST_NOT_FOUND = "REQUEST_NOT_FOUND"
    RESPONSE_NOT_FOUND = "RESPONSE_NOT_FOUND"
    COMMUNICATION_ERROR = "COMMUNICATION_ERROR"
    INVALID_QUERY = "INVALID_QUERY"
    MISSING_CITIZEN = "MISSING_CITIZEN"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorMessages:
    """Error messages for user responses."""

    REQUEST_STILL_RUNNING = (
        "Your request is still under processing, please use again "
        "this URL to monitor it."
    )
    STALE_REQUEST = "No result received from the EHR middleware in time"

    @staticmethod
    def format_too_many_requests(running: int) -> str:
        """Format admission denial message."""
        return (
            f"Too many concurrent running request: {running}. "
            "Please try later."
        )

    @staticmethod
    def format_request_not_found(request_id: str) -> str:
        """Format unknown request message."""
        return f"Request with id {request_id} not found."

    @staticmethod
    def format_not_owned(request_id: str) -> str:
        """Format message for requests of another citizen."""
        return (
            f"Request with id {request_id} not found or not belonging "
            "to requesting citizen."
        )

    @staticmethod
    def format_cannot_start(status: str, request_id: str) -> str:
        """Format invalid start message."""
        return (
            f"Current status ({status}) of request with id {request_id} "
            "does not allow to start it."
        )

    @staticmethod
    def format_cannot_elaborate(status: str, request_id: str) -> str:
        """Format invalid notification message."""
        return (
            f"Current status ({status}) of request with id {request_id} "
            "does not allow to elaborate it."
        )

    @staticmethod
    def format_cannot_retrieve(status: str, request_id: str) -> str:
        """Format message for results requested too early."""
        return (
            f"The status {status} of the request {request_id} does not "
            "allow to retrieve the results."
        )

    @staticmethod
    def format_invalid_bundle(reason: str) -> str:
        """Format bundle validation failure message."""
        return f"The received bundle is not valid: {reason}"

    @staticmethod
    def format_result_not_stored(reason: str) -> str:
        """Format message for a valid bundle that could not be stored."""
        return f"The received bundle could not be processed: {reason}"

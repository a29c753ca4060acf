# This project was developed with assistance from AI tools.
"""Problem Details (RFC 7807) body returned by every wizard error response."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body shared by the entry pages and the state API.

    ``application_id`` is filled when the failure concerns one application
    (for example the snapshot fetch behind ``/application/resume``);
    ``retryable`` tells the page whether offering "try again" makes sense.
    """

    type: str = "about:blank"
    title: str
    status: int
    detail: str = ""
    request_id: str = Field(default="", description="Correlation id, echoed from x-request-id.")
    instance: str = Field(default="", description="Request path that failed.")
    application_id: str | None = None
    retryable: bool = False

"""Errors surfaced to relay clients."""


class RelayError(Exception):
    """A request failure rendered to the client as `{"text": message}`.

    Args:
        status_code: HTTP status to respond with.
        text: User-facing message placed in the body.
    """

    def __init__(self, status_code: int, text: str) -> None:
        super().__init__(text)
        self.status_code = status_code
        self.text = text

    def to_payload(self) -> dict:
        return {"text": self.text}

import uuid


def generate_request_id() -> str:
    """Short id used to correlate the log lines of one inbound request."""
    return uuid.uuid4().hex[:8]

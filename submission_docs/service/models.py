from dataclasses import dataclass


@dataclass(frozen=True)
class AuthorizedCaller:
    """An admin the host has already authenticated for this one request.

    The service only records who asked; it never checks or stores session
    state itself.
    """

    admin_id: str

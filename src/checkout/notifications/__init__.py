"""Email adapter registry.

Uses the fake adapter by default; a real provider adapter can be installed
with set_email_adapter() at application start.
"""

from checkout.notifications.email_port import EmailPort

_email_adapter: EmailPort | None = None


def get_email_adapter() -> EmailPort:
    global _email_adapter
    if _email_adapter is None:
        from checkout.notifications.fake_email import FakeEmailAdapter

        _email_adapter = FakeEmailAdapter()
    return _email_adapter


def set_email_adapter(adapter: EmailPort) -> None:
    global _email_adapter
    _email_adapter = adapter


def reset_email_adapter() -> None:
    global _email_adapter
    _email_adapter = None

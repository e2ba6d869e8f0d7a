"""MailDrain - lease-guarded voicemail mailbox drain."""

__version__ = "0.1.0"

"""otpdesk: browser-accessible TOTP authenticator for a fixed admin/viewer pair."""

__version__ = "0.1.0"

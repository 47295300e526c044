"""Allow ``python -m otpdesk``."""

from otpdesk.cli import main

if __name__ == "__main__":
    main()

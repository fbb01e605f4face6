"""Daily BTC market report mailer."""

__all__ = [
    "config",
    "models",
    "market_client",
    "report_formatter",
    "mailer",
    "orchestrator",
    "scheduler",
    "api",
]

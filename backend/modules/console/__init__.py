MODULE_ID = "console"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "Printer serial console: line parsing, live state, command relay"

ROUTES = [
    "console.routes",
]

PUBLISHES = [
    "temperature",
    "progress",
    "position",
    "power",
    "status",
    "log",
    "error",
]


def register(app) -> None:
    """Register the console module routes."""
    from modules.console import routes

    app.include_router(routes.router, prefix="/api")

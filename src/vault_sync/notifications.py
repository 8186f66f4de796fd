"""User-facing notices, printed with rich when enabled."""

import logging

from rich.console import Console
from rich.markup import escape

logger = logging.getLogger(__name__)


class Notifier:
    """Shows short notices to the operator when notices are switched on."""

    def __init__(self, enabled: bool = True, console: Console | None = None):
        self.enabled = enabled
        self.console = console or Console(stderr=True)

    def notify(self, message: str) -> None:
        logger.debug("Notice (%s): %s", "shown" if self.enabled else "suppressed", message)
        if self.enabled:
            self.console.print(f"[bold cyan]vault-sync[/bold cyan] {escape(message)}")

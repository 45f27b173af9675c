"""Full-screen terminal app.

A thin textual shell around :class:`Controller`: every key press becomes a
:class:`KeyEvent`, goes through ``Controller.dispatch`` and the screen is
re-rendered from the resulting mode.
"""

import logging

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.widgets import Header, Static

from zettelvc.tui.controller import Controller
from zettelvc.tui.events import TAB, KeyEvent
from zettelvc.tui.render import render_body, render_hints, render_status

logger = logging.getLogger(__name__)


class ZettelApp(App):
    """Keyboard-driven Zettelkasten browser and editor."""

    TITLE = "zettelvc"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    #body-scroll {
        height: 1fr;
    }
    #status {
        height: 1;
        padding: 0 1;
    }
    #hints {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    # Tab would otherwise move widget focus; the editor uses it to switch fields
    BINDINGS = [
        Binding("tab", "draft_tab", show=False, priority=True),
    ]

    def __init__(self, controller: Controller, sub_title: str = "") -> None:
        super().__init__()
        self.controller = controller
        self.sub_title = sub_title

    def compose(self) -> ComposeResult:
        yield Header()
        with VerticalScroll(id="body-scroll"):
            yield Static(id="body")
        yield Static(id="status")
        yield Static(id="hints")

    def on_mount(self) -> None:
        self._redraw()

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self._dispatch(KeyEvent(key=event.key, char=event.character))

    def action_draft_tab(self) -> None:
        self._dispatch(KeyEvent.named(TAB))

    def _dispatch(self, key_event: KeyEvent) -> None:
        self.controller.dispatch(key_event)
        if self.controller.should_quit:
            logger.info("Quit requested")
            self.exit()
            return
        self._redraw()

    def _redraw(self) -> None:
        self.query_one("#body", Static).update(render_body(self.controller))
        self.query_one("#status", Static).update(render_status(self.controller))
        self.query_one("#hints", Static).update(render_hints(self.controller))

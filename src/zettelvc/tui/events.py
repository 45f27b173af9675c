"""Key events fed to the controller.

The controller never sees terminal-library objects; the front end converts
each key press to a :class:`KeyEvent` first, so transitions can be driven
directly from tests.
"""

from dataclasses import dataclass
from typing import Optional

UP = "up"
DOWN = "down"
ENTER = "enter"
ESCAPE = "escape"
BACKSPACE = "backspace"
TAB = "tab"
SAVE = "ctrl+s"

_NAVIGATION_ALIASES = {"k": UP, "j": DOWN}


@dataclass(frozen=True)
class KeyEvent:
    """A single key press.

    Attributes:
        key: Key name as reported by the terminal (``"up"``, ``"ctrl+s"``,
            ``"a"``, ``"number_sign"``...).
        char: The printable character produced, if any.
    """

    key: str
    char: Optional[str] = None

    @classmethod
    def char_input(cls, ch: str) -> "KeyEvent":
        """Event for typing one printable character."""
        return cls(key=ch, char=ch)

    @classmethod
    def named(cls, key: str) -> "KeyEvent":
        return cls(key=key, char=None)

    @property
    def printable(self) -> Optional[str]:
        """The typed character if it is printable text, else None."""
        if self.char and len(self.char) == 1 and self.char.isprintable():
            return self.char
        return None

    def matches(self, *names: str) -> bool:
        """Whether this is one of the named keys or typed characters."""
        return self.key in names or (self.char is not None and self.char in names)

    def navigation(self) -> Optional[str]:
        """``UP``/``DOWN`` for arrow keys and their vi aliases, else None."""
        if self.key in (UP, DOWN):
            return self.key
        if self.char is not None:
            return _NAVIGATION_ALIASES.get(self.char)
        return None

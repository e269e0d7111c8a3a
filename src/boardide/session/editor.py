from typing import Callable, List, Protocol

ContentListener = Callable[[str], None]


class EditorWidget(Protocol):
    def set_content(self, text: str) -> None: ...

    def get_content(self) -> str: ...

    def on_content_change(self, callback: ContentListener) -> None: ...


class EditorBuffer:
    """
    Text model behind the editor widget.

    set_content() is a programmatic load and stays silent; user_edit() is what
    the widget calls after a keystroke and notifies listeners with the latest
    text when it actually changed.
    """

    def __init__(self, text: str = ""):
        self._text = text
        self._listeners: List[ContentListener] = []

    def set_content(self, text: str) -> None:
        self._text = text

    def get_content(self) -> str:
        return self._text

    def on_content_change(self, callback: ContentListener) -> None:
        if callable(callback):
            self._listeners.append(callback)

    def user_edit(self, text: str) -> bool:
        if text == self._text:
            return False
        self._text = text
        for callback in list(self._listeners):
            callback(text)
        return True

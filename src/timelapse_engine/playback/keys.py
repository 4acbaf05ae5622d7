"""
Viewer Key Bindings
===================

Maps viewer keystrokes to playback transitions.

Bindings (only while the viewer is open):
    Escape      stop playback and close the viewer
    space       pause when playing, otherwise resume unless ended
    ArrowRight  next frame
    ArrowLeft   previous frame
    r / R       rewind, when ended
"""

from typing import Callable, Dict

from timelapse_engine.models.playback import PlaybackState
from timelapse_engine.playback.controller import PlaybackController


KEY_BINDINGS: Dict[str, Callable[[PlaybackController], PlaybackState]] = {
    "Escape": PlaybackController.stop,
    " ": PlaybackController.toggle,
    "ArrowRight": PlaybackController.next,
    "ArrowLeft": PlaybackController.previous,
    "r": PlaybackController.rewind,
    "R": PlaybackController.rewind,
}


def handle_key(controller: PlaybackController, key: str) -> bool:
    """
    Apply a keystroke to the controller.

    Returns:
        True if the key is bound and the viewer was open
    """
    if not controller.state.viewer_open:
        return False
    action = KEY_BINDINGS.get(key)
    if action is None:
        return False
    action(controller)
    return True

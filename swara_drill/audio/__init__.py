"""Audio collaborators. The sounddevice backed classes live in ``audio.live``."""

from .interfaces import IAudioProvider, ITargetPlayer, SilentTargetPlayer

__all__ = ["IAudioProvider", "ITargetPlayer", "SilentTargetPlayer"]

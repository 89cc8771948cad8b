"""Audio module for ntfybell.

Provides clip decoding, the additive mixer, the play action and the
process-wide output stream.

Usage:
    clip = load_clip("bell.mp3")
    output = create_output_stream(clip.format)
    mixer = Mixer(clip.channels)
    output.play(mixer)
    play = PlayAction(clip, mixer, output)
    play()

    # For testing without hardware
    output = create_output_stream(clip.format, use_mock=True)
"""

from .clip import Clip, ClipCursor, ClipFormat, load_clip
from .mixer import Mixer
from .output import FrameSource, OutputStream
from .play import PlayAction

# Device buffer length in seconds
BUFFER_SECONDS = 0.1


def create_output_stream(
    clip_format: ClipFormat,
    use_mock: bool = False,
    device_name: str = "default",
) -> OutputStream:
    """Create the output stream sized for a clip.

    The device buffer holds 100 ms of audio at the clip's sample rate.

    Args:
        clip_format: Format of the clip that will be played
        use_mock: If True, return mock implementation for testing
        device_name: Output device name or "default"

    Returns:
        Open OutputStream

    Raises:
        AudioDeviceError: If the device cannot be opened
    """
    buffer_frames = clip_format.frames_for(BUFFER_SECONDS)

    if use_mock:
        from .mock_output import MockOutputStream

        return MockOutputStream(
            sample_rate=clip_format.sample_rate,
            channels=clip_format.channels,
            buffer_frames=buffer_frames,
        )

    from .backends.portaudio import PortAudioOutputStream

    return PortAudioOutputStream(
        sample_rate=clip_format.sample_rate,
        channels=clip_format.channels,
        buffer_frames=buffer_frames,
        device_name=device_name,
    )


__all__ = [
    "BUFFER_SECONDS",
    "Clip",
    "ClipCursor",
    "ClipFormat",
    "FrameSource",
    "Mixer",
    "OutputStream",
    "PlayAction",
    "create_output_stream",
    "load_clip",
]

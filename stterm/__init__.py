"""A VT100/xterm-style terminal emulator core with pty handling and sixel decoding."""

__version__ = "0.8.4"
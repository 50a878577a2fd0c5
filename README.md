# stterm

`stterm` is a compact terminal emulator core. It interprets the byte
stream a program writes to a terminal — UTF-8 text, C0/C1 control codes,
ESC, CSI and OSC sequences — and keeps a screen model of glyphs,
attributes, colours, the cursor, scrolling regions, tab stops, the
alternate screen and the selection. It can run a program on a
pseudo-terminal, and it includes a decoder for sixel graphics.

## Installation

```
pip install .
```

Python 3.10 or newer on a POSIX system is required. The only runtime
dependency is `wcwidth`, used to find the display width of wide characters.

## The `stterm` command

```
stterm [-g COLSxROWS] [-l LINE] [-o FILE] [-v] [-e PROGRAM ARGS...]
```

runs a program in a headless terminal and, when the program ends, prints
the final screen contents (one line per row, trailing blanks removed) to
standard output.

- Without a program, the shell is taken from `$SHELL`, else your
  account's login shell, else `/bin/sh`.
- `-g` sets the grid size (default `80x24`).
- `-l LINE` opens a serial line instead of a pty; any remaining arguments
  are passed to `stty` to configure it.
- `-o FILE` turns on print mode and writes printed output to `FILE`
  (`-` for standard output).
- `-v` prints the version.

The exit status is 1 if the program failed or the tty could not be used.

## Using the library

The emulator can be driven entirely in memory, without a pty:

```python
from stterm.terminal import Config, Terminal
from stterm.window import Window

responses = []
term = Terminal(80, 24, Window(), responses.append, Config())

term.write(b"hello\r\n\x1b[1;31mworld\x1b[0m", False)
print(term.text())            # the visible screen contents

term.write(b"\x1b[6n", False) # device status report
print(responses)              # [b'\x1b[2;6R']
```

`Terminal.write` returns how many bytes it consumed; an incomplete UTF-8
sequence at the end is left for the next call. `Config` holds settings
such as tab width, default colours, the identification string, whether
the alternate screen and clipboard writes (OSC 52) are allowed, the word
delimiters used for selection snapping and the shell to start.

`Window` receives the requests that concern the window rather than the
screen: titles, the bell, clipboard contents, mode flags (`WinMode`),
mouse pointer motion, cursor style and palette colour overrides. By
itself it only records them, so they can be inspected; subclass it to
connect the emulator to a real display.

To talk to a child process, wrap a terminal in `stterm.tty.Tty` (it is a
context manager), call `open(...)` to start a program, and call `read()`
whenever the pty is readable. `read()` raises `EOFError` when the program
has gone away cleanly and `ChildProcessError` when it failed. `write(...)`
sends input, `resize(...)` reports the window size, `hangup()` sends the
program `SIGHUP` and `send_break()` sends a break. `shell_command` and
`stty_command` build the command lines that `open` uses.

### Other building blocks

- `stterm.screen.Screen` — the grid of `Glyph` cells with cursor movement,
  clearing, insertion, deletion, scrolling, SGR attributes and dumping
  rows as UTF-8.
- `stterm.selection.Selection` — regular and rectangular selections with
  word and line snapping; `text()` returns the selected text.
- `stterm.csi.CSIEscape` and `stterm.csi.STREscape` — parsers for control
  sequences and string sequences.
- `stterm.glyph` — `Glyph`, `Cursor`, the `Attr` flags, selection
  enumerations and `truecolor` / `is_truecolor`.
- `stterm.utf8` — `utf8_decode`, `utf8_encode`, `utf8_validate` and the
  lenient `base64_decode` used for clipboard sequences.
- `stterm.sixel.SixelParser` — decodes sixel data into BGRA pixels;
  `stterm.hls.hls_to_rgb` converts sixel HLS colours.

```python
from stterm.sixel import SixelParser

parser = SixelParser(0xFFFFFF, 0x000000, True, 8, 16)
parser.parse(b"#1;2;100;0;0~~~~")
pixels = parser.finalize()   # width * height * 4 bytes, rounded to whole cells
```

## What it does not do

- It draws nothing: there is no graphical window, font rendering or
  keyboard and mouse input handling. `Window` is an in-memory record.
- The `stterm` command is not interactive; it does not pass your
  keystrokes to the program, it only shows the screen at the end.
- There is no scrollback history.
- The terminal does not hand DCS data to the sixel decoder; DCS, APC and
  PM strings are read and ignored. Use `SixelParser` directly to decode
  sixel images.

## Tests

```
pip install .[test]
pytest
```
"""Time For - captioned reaction clips from the command line.

Searches Tenor for a clip matching a query, pairs it with a clip that
shows the current time, captions and stitches both with FFmpeg and
shares the result through Imgur.
"""

__version__ = "0.1.0"

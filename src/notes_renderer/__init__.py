"""
This package contains the notes renderer.

It reads a Markdown document with executable Python chunks, runs the chunks,
and writes a styled HTML report that can be served locally.
"""

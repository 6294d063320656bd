"""
Centralized definitions for all project-wide constants.

This module consolidates file paths, directory names, and other static values
shared by the example runner and the notes renderer, so that neither of them
hardcodes locations on disk.

Attributes:
    PROJECT_ROOT (str): The absolute path to the project's root directory.
    CONFIG_DIR (str): The name of the configuration directory.
    OUTPUT_DIR (str): The name of the main output directory.
    ASSETS_DIR (str): The name of the directory for static assets like CSS.
    NOTES_DIR (str): The name of the directory holding the teaching notes.
    EXAMPLES_CONFIG_FILENAME (str): The filename for the batch demo config.
    RENDERER_CONFIG_FILENAME (str): The filename for the notes renderer config.
    DEFAULT_NOTES_FILENAME (str): The notes document rendered by default.
    DEMO_DONE_MARKER (str): Marker file naming the latest completed demo run.
    RENDER_DONE_MARKER (str): Marker file naming the latest rendered report.
    DATA_DIR_NAME (str): The name for the data subdirectory within a run output.
    GRAPHICS_DIR_NAME (str): The name for the graphics subdirectory within a run output.
    LOGS_DIR_NAME (str): The name for the logs subdirectory within a run output.
    REPORTS_DIR_NAME (str): The name for the reports subdirectory within a run output.
"""

import os

# --- Project Root ---
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# --- Top-Level Directory Names ---
CONFIG_DIR = "config"
OUTPUT_DIR = "output"
ASSETS_DIR = "assets"
NOTES_DIR = "notes"

# --- Configuration Filenames ---
EXAMPLES_CONFIG_FILENAME = "config_examples.yaml"
RENDERER_CONFIG_FILENAME = "config_notes_renderer.yaml"

# --- Documents ---
DEFAULT_NOTES_FILENAME = "functions_loops_apply.md"

# --- Completion Markers (written inside OUTPUT_DIR) ---
DEMO_DONE_MARKER = ".demo_done"
RENDER_DONE_MARKER = ".render_done"

# --- Internal Directory Names (used within a run-specific output folder) ---
DATA_DIR_NAME = "data"
GRAPHICS_DIR_NAME = "graphics"
LOGS_DIR_NAME = "logs"
REPORTS_DIR_NAME = "reports"

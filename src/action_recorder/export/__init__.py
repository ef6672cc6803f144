"""
Export - turns a Recording into files people and tools consume.

    JSONExporter               annotated JSON document
    PlaywrightScriptGenerator  runnable Playwright Python script
"""

from action_recorder.export.json_exporter import JSONExporter
from action_recorder.export.script_generator import PlaywrightScriptGenerator, playwright_selector

__all__ = [
    "JSONExporter",
    "PlaywrightScriptGenerator",
    "playwright_selector",
]

"""pipewrap - render configuration templates and run external tools as fail-fast pipelines.

Parameters are checked before anything runs, templates are rendered with
``$name`` placeholders, and each step is one external tool invocation whose
failure stops the run.
"""

__version__ = "0.1.0"

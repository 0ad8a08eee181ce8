"""
Configuration Package for vidproc.

This package centralizes all the static configuration settings for the application.
By separating configuration from the application logic, it becomes easier to manage
and modify parameters without changing the core code.

This package includes settings for:
- Logging format, exit codes, and the layout of the work directory and temp files.
- User-overridable paths for FFmpeg and options for the vid.stab filters.
- The required output container and the preflight probe checks.
"""

"""
Build script for creating a standalone ctxforge executable using PyInstaller.

The CLI and its dependencies are bundled into a single file. tiktoken loads
its encodings through entry points, so its plugin package is collected
explicitly.
"""

import PyInstaller.__main__  # type: ignore

PyInstaller.__main__.run(
    [
        "main.py",
        "--onefile",
        "--name=ctxforge",
        "--collect-submodules=tiktoken_ext",
        "--collect-data=tiktoken",
    ]
)

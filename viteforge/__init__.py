"""viteforge -- scaffolds Vite + React + Tailwind + shadcn/ui applications.

The composition engine lives in :mod:`viteforge.composer`; the command-line
entry point is :func:`viteforge.pipeline.main`.
"""

__version__ = "0.1.0"

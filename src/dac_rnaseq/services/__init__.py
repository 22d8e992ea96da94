"""
Service layer for the DAC RNA-seq walkthrough.

This subpackage contains code that interacts with the outside world:
files, file formats, external tools, etc.
"""

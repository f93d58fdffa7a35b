#!/usr/bin/env python3
"""
Main script for running the many-models pipeline.
"""

# Pipeline overview (README-style):
# 1) List the CSV files of a data folder and load each into its own row.
# 2) Extract grouping metadata from the file names with a regular expression.
# 3) Bind the files, partition by the metadata, and fit one model per group.
# 4) Export coefficients and model summaries as CSV and one plot per group.
#
# Example:
#   python main.py --data-dir data --filename-regex "(\w+)_(\d{4})" \
#       --filename-fields species year --formula "mass ~ length"

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from manymodels.cli import main

if __name__ == "__main__":
    sys.exit(main())

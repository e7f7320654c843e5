"""Cost Breakdown (CBD) spreadsheet checker.

Buyer CBD workbooks are validated against brand rule sets: sections are
located by marker text, cell values are normalized and compared with the
expected values, and the outcome is reported per file.
"""

__version__ = "0.3.0"

"""nvdgrab — month-by-month NVD CVE export to CSV.

This package provides the core logic for paging through the NVD CVE API,
flattening each vulnerability record through a column schema, and
appending the resulting rows to a CSV file.
"""

__version__ = "0.3.0"

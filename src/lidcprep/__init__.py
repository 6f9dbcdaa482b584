"""lidcprep: stage-1 preparation of the LIDC-IDRI collection.

This package rebuilds CT volumes from DICOM slices and reconciles the
curated nodule size list with the LIDC XML reading documents.
"""

__version__ = "0.1.0"
__author__ = "lidcprep Team"

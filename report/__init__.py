"""
Attention report package

- metrics.py: Region intensities, per-page metrics and region transitions
- viz.py: Page attention composites and transition plots
- export.py: Attention table and zip bundle builders
"""

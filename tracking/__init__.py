"""
Live gaze tracking package

- layout.py: Records (samples, points, regions, fixations) and the document layout
- mapping.py: Viewport to page coordinate mapping
- regions.py: Per-page spatial index of content regions
- fixations.py: Streaming I-DT fixation classification
- aggregator.py: Gaze log and per-region attention statistics
- session.py: Tracking session tying the pipeline together
- io.py: Loading recorded samples and document layouts
"""

"""
Service layer of the segmentation engine.

Each service owns one concern (schema, segments, memberships,
history, tidying) and works against the shared ``Database`` handle.
``app.engine.SegmentationEngine`` wires them together.
"""

"""
Core application engine for orchestrating the download process.

This package contains the primary logic. The `DownloadCoordinator` partitions
the resource into segments held by a `SegmentStore`, and runs one
`SegmentWorker` per connection; each worker asks the store for more work
whenever its range runs out.
"""

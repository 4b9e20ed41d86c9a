"""
Core application engine for acquiring and staging distributions.

The `InstanceProvisioner` acts as the high-level coordinator, delegating
artifact resolution to the `ArtifactAcquirer` and archive handling to the
`ArchiveStager`.
"""

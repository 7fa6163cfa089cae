"""File storage module for Vault.

Each authenticated identity owns one directory under the storage root. Files
are uploaded, listed, previewed, downloaded and deleted only inside that
directory:

- namespacer: identity -> namespace directory
- blob_store: canonicalize-and-verify name resolution, atomic writes
- upload: stored-name generation and size-capped commits
- service: the per-request facade used by the router

There is no metadata database; the directory listing is the source of truth.
TODO: Add a name -> metadata index if listing large namespaces becomes slow.
"""

"""
Shared building blocks used by every page package.

`core/` holds the Postgres pool, the remote quiz backend client, token
helpers and toast notifications. Page-specific logic lives in `auth/`,
`questions/`, `library/` and `practice/`.
"""

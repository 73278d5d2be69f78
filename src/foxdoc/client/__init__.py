"""HTTP client for the Apifox schema-export API.

:class:`ApifoxClient` wraps :class:`httpx.Client` with bearer-token auth,
the API version header, YAML/JSON decoding, and mapping of HTTP failures to
the :mod:`foxdoc.exceptions` hierarchy. It is used as a context manager.

Example::

    from foxdoc.client import ApifoxClient

    with ApifoxClient(api_config, token) as client:
        document = client.export_openapi("3189010", ExportOptions.for_endpoint(42))
"""

from foxdoc.client.apifox_client import ApifoxClient

__all__ = ["ApifoxClient"]

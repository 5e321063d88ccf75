import logging
import ssl
import urllib.parse
from io import BytesIO
from typing import Dict, Optional

import thrift.transport.THttpClient
from thrift.transport.TTransport import TTransportException
from urllib3 import HTTPConnectionPool, HTTPSConnectionPool, Timeout

logger = logging.getLogger(__name__)


class THttpClient(thrift.transport.THttpClient.THttpClient):
    """
    Carries each Thrift frame as one HTTP POST.

    Read timeouts are disabled: a statement can run for an arbitrarily long time
    before HiveServer2 answers, so only the connect phase is bounded.
    """

    def __init__(
        self,
        uri: str,
        ssl_verify_mode: int = ssl.CERT_REQUIRED,
        ssl_ca_file: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        max_connections: int = 1,
    ):
        parsed = urllib.parse.urlsplit(uri)
        self.scheme = parsed.scheme
        assert self.scheme in ("http", "https")
        self.host = parsed.hostname
        self.port = parsed.port or (443 if self.scheme == "https" else 80)
        self.path = parsed.path or "/"
        if parsed.query:
            self.path += "?%s" % parsed.query

        self.ssl_verify_mode = ssl_verify_mode
        self.ssl_ca_file = ssl_ca_file
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.max_connections = max_connections

        self.code = None
        self.message = None
        self.headers = None

        self.__wbuf = BytesIO()
        self.__rbuf = BytesIO()
        self.__pool = None
        self.__custom_headers: Optional[Dict[str, str]] = None

    def setCustomHeaders(self, headers: Dict[str, str]):
        self.__custom_headers = dict(headers)

    def setTimeout(self, ms):
        # Only the connect phase is bounded, see read_timeout
        self.connect_timeout = None if ms is None else ms / 1000.0

    def open(self):
        if self.scheme == "https":
            self.__pool = HTTPSConnectionPool(
                self.host,
                self.port,
                maxsize=self.max_connections,
                cert_reqs=self.ssl_verify_mode,
                ca_certs=self.ssl_ca_file,
            )
        else:
            self.__pool = HTTPConnectionPool(
                self.host, self.port, maxsize=self.max_connections
            )

    def close(self):
        self.__pool and self.__pool.close()
        self.__pool = None
        self.__rbuf = BytesIO()

    def isOpen(self):
        return self.__pool is not None

    def read(self, sz):
        return self.__rbuf.read(sz)

    def flush(self):
        if self.__pool is None:
            self.open()

        # Pull data out of buffer that will be sent in this request
        data = self.__wbuf.getvalue()
        self.__wbuf = BytesIO()

        headers = {
            "Content-Type": "application/x-thrift",
            "Content-Length": str(len(data)),
        }
        if self.__custom_headers:
            headers.update(self.__custom_headers)

        response = self.__pool.request(
            "POST",
            url=self.path,
            body=data,
            headers=headers,
            preload_content=True,
            timeout=Timeout(connect=self.connect_timeout, read=self.read_timeout),
            retries=False,
        )

        self.code = response.status
        self.message = response.reason
        self.headers = response.headers

        logger.debug(
            "HTTP Response with status code {}, message: {}".format(
                self.code, self.message
            )
        )

        if self.code >= 400:
            raise TTransportException(
                type=TTransportException.UNKNOWN,
                message="HTTP request failed with status {} {}".format(
                    self.code, self.message
                ),
            )

        # The reply body replaces whatever was left of the previous one
        self.__rbuf = BytesIO(response.data)

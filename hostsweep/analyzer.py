from typing import Dict, Optional


class BannerAnalyzer:
    """
    Knows what to send to a freshly opened port and how to recognise
    the protocol behind the bytes that come back.
    """

    HTTP_PORTS = {80, 443, 8000, 8080, 8443, 8888}
    SMTP_PORTS = {25, 587}

    HTTP_PROBE = b"GET / HTTP/1.0\r\n\r\n"
    NULL_PROBE = b"\r\n"

    PORT_PROBES = {
        554: b"OPTIONS * RTSP/1.0\r\nCSeq: 1\r\n\r\n",
        6379: b"PING\r\n",
    }

    SIGNATURES = [
        ("SSH-", "SSH"),
        ("HTTP/", "HTTP"),
        ("220 ", "FTP/SMTP"),
        ("220-", "FTP/SMTP"),
        ("+OK", "POP3"),
        ("* OK", "IMAP"),
        ("RTSP/", "RTSP"),
        ("+PONG", "Redis"),
        ("-ERR", "Redis"),
        ("RFB ", "VNC"),
    ]

    # Prefix trie, built lazily
    _TRIE_ROOT: Dict = {}

    @classmethod
    def _build_trie(cls):
        for pattern, tag in cls.SIGNATURES:
            node = cls._TRIE_ROOT
            for char in pattern:
                node = node.setdefault(char, {})
            node['_tag'] = tag

    @classmethod
    def identify(cls, banner: Optional[str]) -> Optional[str]:
        """Walks the trie over the start of the banner. None when nothing matches."""
        if not banner:
            return None
        if not cls._TRIE_ROOT:
            cls._build_trie()

        node = cls._TRIE_ROOT
        for char in banner[:20]:
            if char not in node:
                return None
            node = node[char]
            if '_tag' in node:
                return node['_tag']
        return None

    @classmethod
    def get_probe(cls, port: int) -> bytes:
        """Trivial request that makes the service on `port` talk."""
        if port in cls.HTTP_PORTS:
            return cls.HTTP_PROBE
        if port in cls.SMTP_PORTS:
            return b"EHLO hostsweep\r\n"
        return cls.PORT_PROBES.get(port, cls.NULL_PROBE)

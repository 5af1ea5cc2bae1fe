"""eidas-csr - PSD2 qualified certificate request tooling.

Builds and parses the ETSI TS 119 495 qualified statement naming a national
competent authority and PSP roles, and assembles the PKCS#10 requests for
QWAC and QSEAL certificates that carry it.
"""

__version__ = "0.1.0"

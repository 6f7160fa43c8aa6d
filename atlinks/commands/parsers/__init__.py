from . import decode, report

ENTRY_PARSERS = [
    report,
    decode,
]

"""Smart code oracle.

A smart code is a dot-separated classifier such as
`HERA.CRM.CUST.ENT.PROF.v1`: a prefix, at least four more uppercase
classifier segments, and a trailing `v<N>` version.

The five segment form is the canonical one. Longer classifiers are
accepted up to the limit enforced by the HERA API guardrails, which allow
at most eight segments after the prefix.
"""

from hera_testing.names import SMART_CODE_SEGMENT_PATTERN, SMART_CODE_VERSION_PATTERN

from .results import OracleResult

#: Minimal number of classifier segments, the prefix included.
MIN_SEGMENTS = 5

#: Maximal number of classifier segments, the prefix included.
MAX_SEGMENTS = 9

DEFAULT_PREFIX = 'HERA'


def check_smart_code(code: str, prefix: str = DEFAULT_PREFIX) -> OracleResult:
    """Check a smart code against the segment grammar.

    Every violation is reported as a named issue: `insufficient
    segments`, `too many segments`, `empty segment`, `missing version`,
    `invalid prefix` or `invalid segment`.

    Args:
        code: Smart code to check.
        prefix: Expected leading segment.

    Returns:
        A verdict with the parsed segments and version.
    """
    if not isinstance(code, str):
        return OracleResult(
            valid=False,
            rule='smart_code_validation',
            message=f'{code!r} is not a string',
            issues=['malformed input'],
        )

    segments = code.split('.')
    version = None
    if match := SMART_CODE_VERSION_PATTERN.match(segments[-1]):
        version = int(match['version'])
        classifiers = segments[:-1]
    else:
        classifiers = segments

    issues = []
    if len(classifiers) < MIN_SEGMENTS:
        issues.append('insufficient segments')
    elif len(classifiers) > MAX_SEGMENTS:
        issues.append('too many segments')

    if any(not segment for segment in segments):
        issues.append('empty segment')

    if version is None:
        issues.append('missing version')

    if not classifiers or classifiers[0] != prefix:
        issues.append('invalid prefix')

    if any(
        segment and not SMART_CODE_SEGMENT_PATTERN.match(segment)
        for segment in classifiers[1:]
    ):
        issues.append('invalid segment')

    return OracleResult(
        valid=not issues,
        rule='smart_code_validation',
        message=(
            f'{code!r} is a valid smart code'
            if not issues else
            f'{code!r} is not a valid smart code: {", ".join(issues)}'
        ),
        details={
            'code': code,
            'segments': classifiers,
            'version': version,
        },
        issues=issues,
    )

"""
Patching of AssemblyInfo source files.

Rewrites the version attributes of C#, F# and VB AssemblyInfo files:

    [assembly: AssemblyVersion("3.50.0.0")]          C#
    [<assembly: AssemblyVersion("3.50.0.0")>]        F#
    <Assembly: AssemblyVersion("3.50.0.0")>          VB
"""

import codecs
import re
from typing import Dict, Iterable

from loguru import logger

from .errors import BuildError
from .versioning import ResolvedVersion

# Visual Studio saves files without a BOM in the Windows ANSI code page
LEGACY_ENCODING = 'cp1252'

VERSION_ATTRIBUTES = ('AssemblyVersion', 'AssemblyFileVersion', 'AssemblyInformationalVersion')


def _attribute_pattern(name: str):
    return re.compile(
        r'(?P<prefix>\bassembly\s*:\s*(?:System\.Reflection\.)?' + name + r'(?:Attribute)?\s*\(\s*)'
        r'"(?P<value>[^"]*)"',
        re.IGNORECASE,
    )


_PATTERNS = {name: _attribute_pattern(name) for name in VERSION_ATTRIBUTES}


def attribute_values(version: ResolvedVersion) -> Dict[str, str]:
    """Map each version attribute to the value it should carry."""
    return {
        'AssemblyVersion': version.assembly_version,
        'AssemblyFileVersion': version.file_version,
        'AssemblyInformationalVersion': version.package_version,
    }


def patch_text(text: str, values: Dict[str, str]) -> str:
    """
    Replace the version attribute arguments in AssemblyInfo source text.

    Attributes missing from the text are left out; nothing is added.
    """
    for name, value in values.items():
        text = _PATTERNS[name].sub(lambda m, v=value: f'{m.group("prefix")}"{v}"', text)
    return text


def _detect_encoding(raw: bytes) -> str:
    if raw.startswith(codecs.BOM_UTF8):
        return 'utf-8-sig'
    try:
        raw.decode('utf-8')
    except UnicodeDecodeError:
        return LEGACY_ENCODING
    return 'utf-8'


def patch_assembly_info(path: str, version: ResolvedVersion) -> bool:
    """
    Patch one AssemblyInfo file in place.

    The file encoding is kept: UTF-8 with or without a byte order mark, or
    the legacy code page for files that are not valid UTF-8.

    Args:
        path: AssemblyInfo.cs/.fs/.vb file
        version: Versions to write

    Returns:
        bool: True if the file content changed
    """
    with open(path, 'rb') as f:
        raw = f.read()

    encoding = _detect_encoding(raw)
    try:
        original = raw.decode(encoding)
    except UnicodeDecodeError as e:
        raise BuildError(f'Cannot read {path}: not UTF-8 or {LEGACY_ENCODING} text ({e})') from e

    values = attribute_values(version)
    missing = [name for name in values if not _PATTERNS[name].search(original)]
    if missing:
        logger.debug(f'{path}: no {", ".join(missing)} attribute to patch')

    patched = patch_text(original, values)
    if patched == original:
        return False

    # newline='' keeps the file's own line endings
    with open(path, 'w', encoding=encoding, newline='') as f:
        f.write(patched)
    return True


def patch_assembly_infos(paths: Iterable[str], version: ResolvedVersion) -> int:
    """
    Patch every given AssemblyInfo file.

    Returns:
        int: Number of files that changed
    """
    changed = 0
    for path in paths:
        if patch_assembly_info(path, version):
            logger.debug(f'Patched {path}')
            changed += 1
    return changed

"""
Tests for assembly_info.py module.
"""

import codecs

import pytest

from release_build.assembly_info import (
    attribute_values,
    patch_assembly_info,
    patch_assembly_infos,
    patch_text,
)
from release_build.errors import BuildError

CSHARP = '''using System.Reflection;

[assembly: AssemblyTitle("Ploeh.AutoFixture")]
[assembly: AssemblyVersion("0.0.0.0")]
[assembly: AssemblyFileVersion("0.0.0.0")]
[assembly: AssemblyInformationalVersion("0.0.0")]
'''

FSHARP = '''namespace Ploeh.AutoFixture.AutoFoq
open System.Reflection

[<assembly: AssemblyVersion("0.0.0.0")>]
[<assembly: AssemblyFileVersion("0.0.0.0")>]
[<assembly: AssemblyInformationalVersion("0.0.0")>]
do ()
'''

VISUAL_BASIC = '''Imports System.Reflection

<Assembly: AssemblyVersion("0.0.0.0")>
<Assembly: AssemblyFileVersion("0.0.0.0")>
'''


class TestPatchText:
    """Test rewriting attribute values."""

    def test_csharp(self, resolved_version):
        patched = patch_text(CSHARP, attribute_values(resolved_version))

        assert '[assembly: AssemblyVersion("3.50.2.0")]' in patched
        assert '[assembly: AssemblyFileVersion("3.50.2.7")]' in patched
        assert '[assembly: AssemblyInformationalVersion("3.50.3-pre0288")]' in patched
        assert '[assembly: AssemblyTitle("Ploeh.AutoFixture")]' in patched

    def test_fsharp(self, resolved_version):
        patched = patch_text(FSHARP, attribute_values(resolved_version))

        assert '[<assembly: AssemblyVersion("3.50.2.0")>]' in patched
        assert '[<assembly: AssemblyInformationalVersion("3.50.3-pre0288")>]' in patched

    def test_visual_basic(self, resolved_version):
        patched = patch_text(VISUAL_BASIC, attribute_values(resolved_version))

        assert '<Assembly: AssemblyVersion("3.50.2.0")>' in patched
        assert '<Assembly: AssemblyFileVersion("3.50.2.7")>' in patched

    def test_full_attribute_names(self, resolved_version):
        text = '[assembly: System.Reflection.AssemblyVersionAttribute("1.0.0.0")]'
        patched = patch_text(text, attribute_values(resolved_version))
        assert patched == '[assembly: System.Reflection.AssemblyVersionAttribute("3.50.2.0")]'

    def test_file_version_is_not_confused_with_version(self, resolved_version):
        patched = patch_text('[assembly: AssemblyFileVersion("1.0.0.0")]', {'AssemblyVersion': '9.9.9.9'})
        assert patched == '[assembly: AssemblyFileVersion("1.0.0.0")]'

    def test_missing_attributes_are_not_added(self, resolved_version):
        text = '[assembly: AssemblyTitle("x")]\n'
        assert patch_text(text, attribute_values(resolved_version)) == text


class TestPatchAssemblyInfo:
    """Test patching files on disk."""

    def test_patch_file(self, tmp_path, resolved_version):
        path = tmp_path / 'AssemblyInfo.cs'
        path.write_text(CSHARP, encoding='utf-8')

        assert patch_assembly_info(str(path), resolved_version) is True
        assert 'AssemblyVersion("3.50.2.0")' in path.read_text(encoding='utf-8')

    def test_unchanged_file(self, tmp_path, resolved_version):
        path = tmp_path / 'AssemblyInfo.cs'
        path.write_text('// nothing to patch\n', encoding='utf-8')

        assert patch_assembly_info(str(path), resolved_version) is False

    def test_keeps_byte_order_mark(self, tmp_path, resolved_version):
        path = tmp_path / 'AssemblyInfo.cs'
        path.write_bytes(codecs.BOM_UTF8 + CSHARP.encode('utf-8'))

        patch_assembly_info(str(path), resolved_version)

        raw = path.read_bytes()
        assert raw.startswith(codecs.BOM_UTF8)
        assert not raw[len(codecs.BOM_UTF8):].startswith(codecs.BOM_UTF8)

    def test_keeps_crlf_line_endings(self, tmp_path, resolved_version):
        path = tmp_path / 'AssemblyInfo.vb'
        path.write_bytes(VISUAL_BASIC.replace('\n', '\r\n').encode('utf-8'))

        patch_assembly_info(str(path), resolved_version)

        raw = path.read_bytes()
        assert b'<Assembly: AssemblyVersion("3.50.2.0")>\r\n' in raw
        assert b'\r\r\n' not in raw

    def test_patch_many(self, tmp_path, resolved_version):
        first = tmp_path / 'A.cs'
        second = tmp_path / 'B.fs'
        untouched = tmp_path / 'C.cs'
        first.write_text(CSHARP, encoding='utf-8')
        second.write_text(FSHARP, encoding='utf-8')
        untouched.write_text('// empty\n', encoding='utf-8')

        assert patch_assembly_infos([str(first), str(second), str(untouched)], resolved_version) == 2

    def test_windows_code_page_file(self, tmp_path, resolved_version):
        """Files saved in the ANSI code page are patched and written back in it."""
        path = tmp_path / 'AssemblyInfo.cs'
        path.write_bytes('[assembly: AssemblyCopyright("Copyright © Mark Seemann")]\n'
                         '[assembly: AssemblyVersion("1.0.0.0")]\n'.encode('cp1252'))

        assert patch_assembly_info(str(path), resolved_version) is True

        raw = path.read_bytes()
        assert 'Copyright © Mark Seemann'.encode('cp1252') in raw
        assert b'[assembly: AssemblyVersion("3.50.2.0")]' in raw
        assert not raw.startswith(codecs.BOM_UTF8)

    def test_undecodable_file(self, tmp_path, resolved_version):
        path = tmp_path / 'AssemblyInfo.cs'
        # 0x81 is undefined in cp1252 and invalid as UTF-8
        original = b'[assembly: AssemblyVersion("1.0.0.0")]\n// \x81\n'
        path.write_bytes(original)

        with pytest.raises(BuildError, match='AssemblyInfo.cs'):
            patch_assembly_info(str(path), resolved_version)
        assert path.read_bytes() == original

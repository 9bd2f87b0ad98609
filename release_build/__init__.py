"""
Release Build

Build automation for the AutoFixture family of .NET libraries: version
stamping from git tags, MSBuild compilation, test runs, release layout,
NuGet packaging and publishing.
"""

from ._version import __version__

__author__ = "AutoFixture contributors"
__description__ = "Build, test, package and publish the AutoFixture libraries"

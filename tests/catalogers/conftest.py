# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pytest

SITE_PACKAGES = "usr/lib/python3.11/site-packages"

DPKG_STATUS = """\
Package: zlib1g
Status: install ok installed
Priority: optional
Installed-Size: 164
Maintainer: Mark Brown <broonie@debian.org>
Architecture: amd64
Source: zlib (1:1.2.13.dfsg-1)
Version: 1:1.2.13.dfsg-1
Description: compression library - runtime
 zlib is a library implementing the deflate compression method found
 in gzip and PKZIP.

Package: oldpkg
Status: deinstall ok config-files
Architecture: all
Version: 0.9
"""

APK_INSTALLED = """\
C:Q1qKcZ+j23xssAXmgQhkOO8dHnbWw=
P:musl
V:1.2.4-r2
A:x86_64
S:383152
I:622592
T:the musl c library (libc) implementation
U:https://musl.libc.org/
L:MIT
o:musl
m:Timo Teras <timo.teras@iki.fi>
F:lib
R:ld-musl-x86_64.so.1
Z:Q1p9ZxkR6ZcEe6tUoTNmOFqmvJT0k=
R:libc.musl-x86_64.so.1

P:busybox
V:1.36.1-r5
A:x86_64
L:GPL-2.0-only
D:so:libc.musl-x86_64.so.1
"""

ROOTFS = {
    "etc/os-release": 'PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"\nID=debian\nVERSION_ID="12"\n',
    f"{SITE_PACKAGES}/six-1.16.0.dist-info/METADATA": (
        "Metadata-Version: 2.1\nName: six\nVersion: 1.16.0\nLicense: MIT\n"
        "Author: Benjamin Peterson\nAuthor-email: benjamin@python.org\n\nPython 2 and 3 compatibility\n"
    ),
    f"{SITE_PACKAGES}/six-1.16.0.dist-info/RECORD": (
        "six.py,sha256=TOOfQi7nFGjMnN8uvjEmkJPi5vyfPkJmKJ1J8RdPTk0,34549\n"
        "six-1.16.0.dist-info/METADATA,,\n"
    ),
    f"{SITE_PACKAGES}/six-1.16.0.dist-info/top_level.txt": "six\n",
    f"{SITE_PACKAGES}/six.py": "# six\n",
    f"{SITE_PACKAGES}/legacy-0.1.egg-info/PKG-INFO": (
        "Metadata-Version: 1.1\nName: legacy\nVersion: 0.1\n"
        "Classifier: License :: OSI Approved :: BSD License\n"
    ),
    "var/lib/dpkg/status": DPKG_STATUS,
    "var/lib/dpkg/info/zlib1g:amd64.list": "/.\n/usr/lib/x86_64-linux-gnu/libz.so.1\n",
    "var/lib/dpkg/info/zlib1g:amd64.md5sums": "d41d8cd98f00b204e9800998ecf8427e  usr/lib/x86_64-linux-gnu/libz.so.1\n",
    "usr/share/doc/zlib1g/copyright": "Format: https://www.debian.org/doc/packaging-manuals/copyright-format/1.0/\n\nFiles: *\nLicense: Zlib\n",
    "lib/apk/db/installed": APK_INSTALLED,
    "app/package.json": '{"name": "my-app", "version": "0.0.1"}',
    "app/node_modules/left-pad/package.json": (
        '{"name": "left-pad", "version": "1.3.0", "license": "WTFPL",'
        ' "author": {"name": "azer", "email": "azer@roadbeats.com"},'
        ' "repository": {"type": "git", "url": "git://github.com/stevemao/left-pad.git"}}'
    ),
    "app/node_modules/left-pad/lib/package.json": '{"name": "not-a-package", "version": "1.0.0"}',
    "app/node_modules/@types/node/package.json": (
        '{"name": "@types/node", "version": "20.8.0", "licenses": [{"type": "MIT"}]}'
    ),
}


@pytest.fixture(name="rootfs")
def fixture_rootfs(make_tree):
    return make_tree(ROOTFS, name="rootfs")

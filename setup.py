"""
libdigest setup script
"""
#=============================================================================
# init script env -- ensure cwd = root of source dir
#=============================================================================
import os
root_dir = os.path.abspath(os.path.join(__file__, ".."))
os.chdir(root_dir)

#=============================================================================
# imports
#=============================================================================
import re
from setuptools import setup, find_packages

#=============================================================================
# version string
#=============================================================================

# read version string from libdigest without importing it
with open(os.path.join(root_dir, "libdigest", "__init__.py")) as fh:
    version = re.search(r'^__version__ = "([^"]+)"', fh.read(), re.M).group(1)

#=============================================================================
# static text
#=============================================================================
SUMMARY = "flat-file credential store for HTTP digest authentication"

DESCRIPTION = """\
libdigest manages htdigest-style password files: an ordered, in-memory
collection of precomputed digests which is read from and atomically written
back to a flat file, with a pluggable encoder computing each digest.
"""

KEYWORDS = """\
password digest authentication
apache htdigest htpasswd
"""

CLASSIFIERS = """\
Intended Audience :: Developers
License :: OSI Approved :: BSD License
Natural Language :: English
Operating System :: POSIX
Programming Language :: Python :: 3
Programming Language :: Python :: Implementation :: CPython
Topic :: Security
Topic :: Software Development :: Libraries
""".splitlines()

if '.dev' in version:
    CLASSIFIERS.append("Development Status :: 3 - Alpha")
else:
    CLASSIFIERS.append("Development Status :: 5 - Production/Stable")

#=============================================================================
# run setup
#=============================================================================
setup(
    # package info
    packages=find_packages(root_dir, include=["libdigest", "libdigest.*"]),
    zip_safe=True,
    python_requires=">=3.9",

    # metadata
    name="libdigest",
    version=version,
    license="BSD",

    description=SUMMARY,
    long_description=DESCRIPTION,
    keywords=KEYWORDS,
    classifiers=CLASSIFIERS,

    install_requires=[
        "typing_extensions>=4.0",
    ],

    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-archon>=0.0.6",
        ],
    },
)

#=============================================================================
# eof
#=============================================================================

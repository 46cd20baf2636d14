from setuptools import setup, find_packages
import re
from pathlib import Path


def read_version():
    init_path = Path(__file__).parent / "terrafit" / "__init__.py"
    src = init_path.read_text(encoding="utf-8")
    match = re.search(r'^__version__\s*=\s*[\'"]([^\'"]+)[\'"]', src, re.M)
    if match:
        return match.group(1)
    raise RuntimeError("Cannot find __version__ in __init__.py")

VERSION = read_version()

with open("README.md", "r", encoding="utf-8") as file:
    DESCRIPTION = file.read()

CLASSIFIERS = ['Intended Audience :: Science/Research',
               'License :: OSI Approved :: MIT License',
               'Programming Language :: Python :: 3.9',
               'Programming Language :: Python :: 3.10',
               'Programming Language :: Python :: 3.11',
               'Programming Language :: Python :: 3.12',
               'Topic :: Scientific/Engineering',
               'Operating System :: OS Independent']

PACKAGES = find_packages(include=['terrafit', 'terrafit.*'])


def parse_requirements(path="requirements.txt"):
    """Return a list of requirements from the given file."""
    reqs = []
    requirements_path = Path(__file__).parent / path
    if requirements_path.exists():
        with open(requirements_path, "r", encoding="utf-8") as req_file:
            for line in req_file:
                # Strip comments and whitespace
                line = line.split("#", 1)[0].strip()
                if line:
                    reqs.append(line)
    return reqs


REQUIREMENTS = parse_requirements()

KEYWORDS = ["terrain",
            "height-field",
            "surface-reconstruction",
            "point-cloud",
            "rgb-d"]

setup_info = dict(
    name='terrafit',
    version=VERSION,
    license='MIT',
    python_requires='>=3.9',
    classifiers=CLASSIFIERS,
    packages=PACKAGES,
    keywords=KEYWORDS,
    description="terrafit: incremental height field mesh fitting to depth camera point clouds",
    long_description=DESCRIPTION,
    long_description_content_type="text/markdown",
    install_requires=REQUIREMENTS,
    extras_require={
        'telemetry': ['sentry-sdk'],
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['terrafit=terrafit.__main__:main'],
    },
)

setup(**setup_info)

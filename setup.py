# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""
Tracegrad build configuration.

Pure Python; NumPy is the only runtime dependency.

Build
-----
    pip install -e .                          # editable install
    pip install -e .[dev]                     # plus the test tooling
    python -m pytest tests                    # run the test suite
    python setup.py bdist_wheel               # wheel

The repository root is the ``tracegrad`` package itself, so the package
directory is mapped explicitly below.
"""
import os

from setuptools import setup

# ── Package metadata ──
try:
    with open(os.path.join(os.path.dirname(__file__), 'README.md'), 'r',
              encoding='utf-8') as fh:
        long_description = fh.read()
except FileNotFoundError:
    long_description = ''

setup(
    name='tracegrad',
    version='0.1.0',
    author='Pictofeed, LLC',
    author_email='engineering@pictofeed.io',
    description=(
        'Tracing reverse-mode automatic differentiation on NumPy, '
        'with gradients of gradients'
    ),
    long_description=long_description,
    long_description_content_type='text/markdown',
    url='https://github.com/pictofeed/tracegrad',
    license='Proprietary',

    package_dir={
        'tracegrad': '.',
        'tracegrad.backends': 'backends',
    },
    packages=[
        'tracegrad',
        'tracegrad.backends',
    ],

    python_requires='>=3.10',
    install_requires=[
        'numpy>=1.24',
    ],
    extras_require={
        'dev': [
            'pytest>=7.0',
        ],
    },

    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'License :: Other/Proprietary License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Scientific/Engineering :: Mathematics',
    ],
    zip_safe=False,
)

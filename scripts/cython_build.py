import os
from pathlib import Path

from Cython.Build import cythonize
from Cython.Compiler import Options
from setuptools import Extension, setup

import app.config  # DO NOT REMOVE  # noqa: F401
from app.lib.pydantic_settings_integration import pydantic_settings_integration

CYTHON_MARCH = 'native'
CYTHON_MTUNE = 'native'
CYTHON_FLAGS = ''

pydantic_settings_integration(__name__, globals())

Options.docstrings = False
Options.annotate = True

# modules with cython-typed hot paths
paths = [
    Path(p)
    for p in (
        'app/lib/boundary_geometry.py',
        'app/lib/boundary_scorer.py',
        'app/lib/cython_detect.py',
        'app/lib/geo_utils.py',
        'app/format/boundary_geojson.py',
    )
]

extra_args: list[str] = [
    '-O3',
    '-pipe',
    # docs: https://gcc.gnu.org/onlinedocs/gcc-14.1.0/gcc.pdf
    f'-march={CYTHON_MARCH}',
    f'-mtune={CYTHON_MTUNE}',
    '-funsafe-math-optimizations',
    '-fno-semantic-interposition',
    *CYTHON_FLAGS.split(),
]

setup(
    ext_modules=cythonize(
        [
            Extension(
                path.with_suffix('').as_posix().replace('/', '.'),
                [str(path)],
                extra_compile_args=extra_args,
                extra_link_args=extra_args,
            )
            for path in paths
        ],
        nthreads=os.cpu_count() or 1,
        compiler_directives={
            # https://cython.readthedocs.io/en/latest/src/userguide/source_files_and_compilation.html#compiler-directives
            'overflowcheck': True,
            'embedsignature': True,
            'language_level': 3,
        },
    ),
)

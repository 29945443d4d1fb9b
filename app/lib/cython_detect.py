import logging

import cython

from app.config import ENV

if cython.compiled:
    logging.info('🐇 Cython modules are compiled')
elif ENV == 'prod':
    logging.warning('🐌 Cython modules are not compiled, run scripts/cython_build.py build_ext --inplace')
else:
    logging.info('🐌 Cython modules are not compiled')

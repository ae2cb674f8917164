"""
Packaging for the INDI connector. Install with `pip install -e .[test]` and run the tests with pytest.
"""

from setuptools import setup

setup(
    name='indi-connector-py',
    version='0.1.0',
    description='INDI protocol property model, incremental XML codec, connections and relay server.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['indi', 'indi.conduit', 'indi.config', 'indi.connector', 'indi.protocol', 'indi.support'],
    package_data={'indi': ['*.cfg']},
    python_requires='>=3.7',
    install_requires=[
        'configobj',
        'zeroconf',
    ],
    extras_require={
        'test': ['PyHamcrest', 'timeout-decorator', 'pytest'],
    },
    entry_points={
        'console_scripts': ['indi-relay = indi.server:main'],
    },
    zip_safe=False,
)

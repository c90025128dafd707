import codecs

from setuptools import setup, find_packages

from k6_bdd import __version__


def long_description() -> str:
    with codecs.open('README.md', encoding='utf-8') as fd:
        return fd.read()


setup(
    name='k6-bdd',
    version=__version__,
    description='Compile BDD feature files to k6 load test scripts, and run them',
    long_description=long_description(),
    long_description_content_type='text/markdown',
    license='MIT',
    packages=find_packages(exclude=['*tests', '*tests.*']),
    package_data={
        'k6_bdd': ['py.typed', 'templates/*.j2'],
    },
    python_requires='>=3.9',
    install_requires=[
        'behave>=1.2.6',
        'Jinja2>=3.0.3',
        'parse>=1.19.0',
        'PyYAML>=5.3.0',
    ],
    keywords=[
        'k6',
        'behave',
        'bdd',
        'gherkin',
        'load',
        'loadtest',
        'performance',
    ],
    classifiers=[
        'Development Status :: 4 - Beta',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: Implementation :: CPython',
        'Operating System :: POSIX :: Linux',
    ],
    extras_require={
        'dev': [
            'mypy>=0.931',
            'flake8>=4.0.0',
            'pytest>=7.0.0',
            'pytest-cov>=3.0.0',
            'pytest-mock>=3.7.0',
            'pytest-timeout>=2.1.0',
            'types-PyYAML>=5.3.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'k6-bdd=k6_bdd.__main__:main',
        ]
    },
)

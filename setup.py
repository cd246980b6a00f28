from setuptools import setup, find_packages

setup(
    name='piazza-cli',
    version='0.1.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'requests',
        'beautifulsoup4',
        'pyyaml',
        'tqdm',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'piazza=piazza_cli.main:main',
        ],
    },
)

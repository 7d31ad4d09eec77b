from setuptools import find_packages, setup

setup(
    name='midiserial',
    version='1.0.0',
    description='MIDI <-> raw serial line bridge',
    author='',
    author_email='',
    packages=find_packages(include=['midiserial', 'midiserial.*']),
    python_requires='>=3.10',
    install_requires=[
        'mido>=1.3',
        'python-rtmidi>=1.5',
        'msgspec',
        'marshmallow>=3.13',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'midiserial=midiserial.daemon:main',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
)

import os

from setuptools import find_packages, setup


here = os.path.abspath(os.path.dirname(__file__))

about = {}
with open(os.path.join(here, "mockpact", "__version__.py")) as f:
    exec(f.read(), about)


def read(filename):
    with open(os.path.join(here, filename), 'rb') as f:
        return f.read().decode('utf-8')


setup(
    name='mockpact',
    version=about['__version__'],
    description=('Mock providers for writing consumer driven contracts'
                 ' using the Pact framework.'),
    long_description=read('README.md'),
    long_description_content_type='text/markdown',
    entry_points='''
        [pytest11]
        mockpact=mockpact.pytest_plugin
    ''',
    install_requires=[
        'pytest',
        'semver',
        'colorama',
        'restnavigator'
    ],
    extras_require={
        'test': ['pytest-mock', 'requests'],
    },
    packages=find_packages(),
    license='MIT',
    classifiers=[
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Topic :: Software Development :: Testing',
        'Topic :: Software Development :: Testing :: Mocking',
        'Topic :: Software Development :: Testing :: Acceptance',
    ]
)

import os
import re
from setuptools import setup, find_packages

packages = find_packages(exclude=['tests', 'tests.*'])


# Function to parse __version__ in `procfork`
def find_version():
    here = os.path.abspath(os.path.dirname(__file__))
    with open(os.path.join(here, 'procfork', '__init__.py'), 'r') as fp:
        version_file = fp.read()
    version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                              version_file, re.M)
    if version_match:
        return version_match.group(1)
    raise RuntimeError("Unable to find version string.")


setup(
    name='procfork',
    version=find_version(),
    description=("Run a callable in a forked child process with piped "
                 "standard streams and guaranteed termination"),
    long_description=open('README.md', 'rb').read().decode('utf-8'),
    long_description_content_type='text/markdown',
    packages=packages,
    zip_safe=False,
    license='LGPL-3.0-only',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Operating System :: POSIX',
        'Programming Language :: Python :: 3',
        'Topic :: System :: Operating System',
        'Topic :: Software Development :: Libraries',
    ],
    platforms='posix',
    python_requires='>=3.9',
    install_requires=[],
    extras_require={'test': ['pytest', 'psutil']},
)

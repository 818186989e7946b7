"""
Provides project-level commands. Commands are run via `python setup.py <command> [args]`

Commands available:

- apidoc: regenerate reST docs for inline pydoc comments
- autobuild: watch for changes to the reST files and rebuild the documentation, refreshing
   the browser.
"""

from setuptools import setup, Command

import os


class RunInRootCommand(Command):
    user_options = []

    def initialize_options(self):
        self.cwd = None

    def finalize_options(self):
        self.cwd = os.getcwd()

    def run(self):
        assert os.getcwd() == self.cwd, 'Must be in package root: %s' % self.cwd
        self.runcmd()

    def runcmd(self):
        pass


class ApiDocCommand(RunInRootCommand):
    description = "regenerates the API docs"

    def runcmd(self):
        os.system('"sphinx-apidoc" -f -e -o docs/apidoc .')


class AutoBuildCommand(RunInRootCommand):
    description = "watches the docs for changes and rebuilds them, automatically refreshing the browser page"

    def runcmd(self):
        os.system("sphinx-autobuild docs docs/_build/html -B")


setup(
    name='ecpconsole',
    version='0.0.1',
    description='Discovery of ECP devices on the local network, and sessions with their debug consoles.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['ecpconsole', 'ecpconsole.conduit', 'ecpconsole.config', 'ecpconsole.connector',
                'ecpconsole.discovery', 'ecpconsole.session', 'ecpconsole.support', 'ecpconsole.test'],
    package_data={'ecpconsole.config': ['*.cfg']},
    python_requires='>=3.9',
    install_requires=[
        'configobj>=5.0.6,<5.1',
        'psutil>=5.6',
        'requests>=2.20',
    ],
    extras_require={
        'test': [
            'PyHamcrest>=2.0',
            'pytest>=6.0',
            'timeout-decorator>=0.5',
        ],
    },
    zip_safe=False,
    cmdclass={
        'apidoc': ApiDocCommand,
        'autobuild': AutoBuildCommand
    }
)

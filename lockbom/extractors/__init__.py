"""Importing this package registers every extractor."""
from . import apk
from . import bundler
from . import cargo
from . import composer
from . import conan
from . import csv_rows
from . import dpkg
from . import gomod
from . import gradle
from . import maven
from . import mix
from . import npm
from . import nuget
from . import pdm
from . import pipenv
from . import pnpm
from . import poetry
from . import pubspec
from . import renv
from . import requirements
from . import setup_cfg
from . import setup_py
from . import yarn

# claims any file without an extension, so it is asked last
from . import gobinary

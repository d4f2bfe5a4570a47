"""
Global preferences are stored as attributes of a `SimGlobalPreferences`
object ``prefs``.

Preferences are runtime settings (logging, numerical checks, search limits).
Model parameters are not preferences, they are part of the immutable
`~sgnsim.config.ModelConfig`.
"""
import os
import re
from collections.abc import MutableMapping
from io import StringIO

from sgnsim.utils.stringtools import deindent, indent

__all__ = ["PreferenceError", "SimPreference", "prefs"]


def parse_preference_name(name):
    """
    Split a preference name into a base and end name.

    Parameters
    ----------
    name : str
        The full name of the preference.

    Returns
    -------
    basename : str
        The first part of the name up to the final ``.``.
    endname : str
        The last part of the name from the final ``.`` onwards.

    Examples
    --------
    >>> parse_preference_name('solver.check_finite')
    ('solver', 'check_finite')
    >>> parse_preference_name('logging.console_log_level')
    ('logging', 'console_log_level')
    """
    parts = name.split(".")
    basename = ".".join(parts[:-1])
    endname = parts[-1]
    return basename, endname


def check_preference_name(name):
    """
    Make sure that a preference name is valid. This checks that the name does
    not contain illegal characters and does not clash with method names such
    as "keys" or "items".

    Raises
    ------
    PreferenceError
        In case the name is invalid.
    """
    if not re.match("[A-Za-z][_a-zA-Z0-9]*$", name):
        raise PreferenceError(
            f'Illegal preference name "{name}": A preference name can only '
            "start with a letter and only contain letters, digits or "
            "underscore."
        )
    if name in dir(MutableMapping) or name in prefs.__dict__:
        raise PreferenceError(
            f'Illegal preference name "{name}": This is also the name of a '
            "method."
        )


class PreferenceError(Exception):
    """
    Exception relating to the preference system.
    """

    pass


class DefaultValidator:
    """
    Default preference validator: checks that the provided value is of the
    same class as the default value.
    """

    def __init__(self, value):
        self.value = value

    def __call__(self, value):
        if isinstance(self.value, bool):
            return isinstance(value, bool)
        if isinstance(self.value, float) and isinstance(value, int):
            return not isinstance(value, bool)
        return isinstance(value, self.value.__class__)


class SimPreference:
    """
    Used for defining a preference.

    Parameters
    ----------
    default : object
        The default value.
    docs : str
        Documentation for the preference value.
    validator : func
        A function that returns True or False depending on whether the
        preference value is valid or not. If not specified, uses the
        `DefaultValidator` for the default value provided.
    representor : func
        A function that returns a string representation of a valid preference
        value that can be passed to `eval`. By default, uses `repr`.
    """

    def __init__(self, default, docs, validator=None, representor=repr):
        self.representor = representor
        if validator is None:
            validator = DefaultValidator(default)
        self.validator = validator
        self.default = default
        self.docs = docs


class SimGlobalPreferences(MutableMapping):
    """
    Class of the ``prefs`` object.

    Used for getting/setting/validating/registering preference values.
    All preferences must be registered via `register_preferences`. To get or
    set a preference, you can either use a dictionary-based or an
    attribute-based interface::

        prefs['solver.check_finite'] = False
        prefs.solver.check_finite = False
    """

    def __init__(self):
        self.prefs = {}
        self.backup_prefs = {}
        self.prefs_unvalidated = {}
        self.pref_register = {}
        self.eval_namespace = {}
        exec("from numpy import *", self.eval_namespace)

    def __getitem__(self, item):
        if item in self.pref_register:
            # This asks for a category, not a single preference
            return SimGlobalPreferencesView(item, self)
        return self.prefs[item]

    def __len__(self):
        return len(self.prefs)

    def __iter__(self):
        return iter(self.prefs)

    def __contains__(self, item):
        return item in self.prefs

    def __setitem__(self, name, value):
        basename, endname = parse_preference_name(name)
        if basename not in self.pref_register:
            raise PreferenceError(
                f"Preference category {basename} is unregistered. Spelling error?"
            )
        prefdefs, _ = self.pref_register[basename]
        if endname not in prefdefs:
            raise PreferenceError(
                f"Preference {name} is unregistered. Spelling error?"
            )
        pref = prefdefs[endname]
        if not pref.validator(value):
            raise PreferenceError(f"Value {value} for preference {name} is invalid.")
        self.prefs[name] = value
        if name in self.prefs_unvalidated:
            del self.prefs_unvalidated[name]

    def __delitem__(self, item):
        raise PreferenceError("Preferences cannot be deleted.")

    def __getattr__(self, name):
        if name.startswith("__") or name == "pref_register":
            raise AttributeError(name)

        # This function might get called from SimGlobalPreferencesView with
        # a prefixed name -- therefore the name can contain dots!
        if name in self.pref_register:
            return SimGlobalPreferencesView(name, self)

        basename, _ = parse_preference_name(name)
        if len(basename) and basename not in self.pref_register:
            raise AssertionError(
                f"__getattr__ received basename '{basename}' which is "
                "unregistered. This should never happen!"
            )
        return self[name]

    def __setattr__(self, name, value):
        # Do not allow to set a category name to something else
        if "pref_register" in self.__dict__ and name in self.pref_register:
            raise PreferenceError("Cannot set a preference category.")
        MutableMapping.__setattr__(self, name, value)

    def __delattr__(self, name):
        if "pref_register" in self.__dict__ and name in self.pref_register:
            raise PreferenceError("Cannot delete a preference category.")
        MutableMapping.__delattr__(self, name)

    toplevel_categories = property(
        fget=lambda self: [
            category for category in self.pref_register if "." not in category
        ],
        doc="The toplevel preference categories",
    )

    def __dir__(self):
        res = dir(type(self)) + list(self.__dict__.keys())
        res.extend(self.toplevel_categories)
        return res

    def eval_pref(self, value):
        """
        Evaluate a string preference in the numpy namespace.
        """
        return eval(value, self.eval_namespace)

    def _set_preference(self, name, value):
        """
        Try to set the preference and allow for unregistered base names. This
        method is used when reading preferences from a file, the categories
        might be registered later.
        """
        basename, _ = parse_preference_name(name)
        if basename not in self.pref_register:
            self.prefs_unvalidated[name] = value
        else:
            self[name] = value

    def _backup(self):
        """
        Store a backup copy of the preferences to restore with `_restore`.
        """
        self.backup_prefs.update(**self.prefs)

    def _restore(self):
        """
        Restore a copy of the values of the preferences backed up with
        `_backup`.
        """
        self.prefs.update(**self.backup_prefs)

    def get_documentation(self, basename=None):
        """
        Generates a string documenting all preferences with the given
        `basename`. If no `basename` is given, all preferences are documented.
        """
        if basename is None:
            basenames = sorted(self.pref_register)
        else:
            if basename not in self.pref_register:
                raise ValueError(
                    f'No preferences under the name "{basename}" are registered'
                )
            basenames = [basename]
        s = ""
        for name in basenames:
            prefdefs, basedoc = self.pref_register[name]
            s += f"{name}\n{'-' * len(name)}\n\n"
            s += deindent(basedoc, docstring=True).strip() + "\n\n"
            for prefname in sorted(prefdefs):
                pref = prefdefs[prefname]
                default = pref.representor(pref.default)
                s += f"``{name}.{prefname}`` = ``{default}``\n"
                s += indent(deindent(pref.docs, docstring=True).strip())
                s += "\n\n"
        return s

    def _as_pref_file(self, valuefunc):
        """
        Helper function used to generate the preference file for the default
        or current preference values.
        """
        s = ""
        for basename, (prefdefs, basedoc) in self.pref_register.items():
            s += "#" + "-" * 79 + "\n"
            s += "\n".join(
                "# " + line
                for line in deindent(basedoc, docstring=True).strip().split("\n")
            )
            s += "\n#" + "-" * 79 + "\n\n"
            s += "[" + basename + "]\n\n"
            for name in sorted(prefdefs):
                pref = prefdefs[name]
                s += "\n".join(
                    "# " + line
                    for line in deindent(pref.docs, docstring=True).strip().split("\n")
                )
                s += "\n\n"
                value = valuefunc(pref, basename + "." + name)
                s += name + " = " + pref.representor(value) + "\n\n"
        return s

    defaults_as_file = property(
        fget=lambda self: self._as_pref_file(lambda pref, fullname: pref.default),
        doc="Get a preference file format string for the default preferences",
    )

    as_file = property(
        fget=lambda self: self._as_pref_file(lambda pref, fullname: self[fullname]),
        doc="Get a preference file format string for the current preferences",
    )

    def read_preference_file(self, file):
        """
        Reads a preferences file.

        The file format is a plain text file of the form::

            a.b.c = 1
            # Comment line
            [a]
            b.d = 2
            [a.b]
            e = 3

        Blank and comment lines are ignored. `eval` is called on the values
        (with the numpy namespace available), so strings should be written as,
        e.g. ``'INFO'`` rather than ``INFO``. Within a section, the section
        name is prepended to the key.

        Parameters
        ----------
        file : file, str
            The file object or filename of the preference file.
        """
        if isinstance(file, str):
            filename = file
            with open(file) as f:
                lines = f.readlines()
        else:
            filename = repr(file)
            lines = file.readlines()
            file.close()
        lines = [line.strip() for line in lines]
        lines = [line for line in lines if line and not line.startswith("#")]
        bases = []
        for line in lines:
            m = re.match(r"\[([^\]]*)\]", line)
            if m:
                bases = m.group(1).strip().split(".")
                continue
            m = re.match("(.*?)=(.*)", line)
            if m:
                extname = m.group(1).strip()
                value = m.group(2).strip()
                keyname = ".".join(bases + extname.split("."))
                self._set_preference(keyname, self.eval_pref(value))
                continue
            raise PreferenceError(f"Parsing error in preference file {filename}")

    def load_preferences(self):
        """
        Load all the preference files, but do not validate them.

        Preference files are read in the following order:

        1. ``sgnsim/default_preferences`` from the installation directory.
        2. ``~/.sgnsim/user_preferences`` from the user's home directory
        3. ``./sgnsim_preferences`` from the current directory

        Files that are missing are ignored. Preferences read at each step
        override preferences from previous steps.
        """
        curdir, _ = os.path.split(__file__)
        basedir = os.path.normpath(os.path.join(curdir, ".."))
        default_prefs = os.path.join(basedir, "default_preferences")
        user_prefs = os.path.join(os.path.expanduser("~"), ".sgnsim/user_preferences")
        cur_prefs = "sgnsim_preferences"
        for file in [default_prefs, user_prefs, cur_prefs]:
            try:
                self.read_preference_file(file)
            except OSError:
                pass

    def reset_to_defaults(self):
        """
        Resets the parameters to their default values.
        """
        self.read_preference_file(StringIO(self.defaults_as_file))

    def register_preferences(self, prefbasename, prefbasedoc, **prefs):
        """
        Registers a set of preference names, docs and validation functions.

        Parameters
        ----------
        prefbasename : str
            The base name of the preference.
        prefbasedoc : str
            Documentation for this base name
        **prefs : dict of (name, `SimPreference`) pairs
            The preference names to be defined. The full preference name will
            be ``prefbasename.name``.

        Raises
        ------
        PreferenceError
            If the base name is already registered.
        """
        if prefbasename in self.pref_register:
            raise PreferenceError(f"Base name {prefbasename} already registered.")
        basename, category_name = parse_preference_name(prefbasename)
        if len(basename) and basename in self.pref_register:
            parent_preferences, _ = self.pref_register[basename]
            if category_name in parent_preferences:
                raise PreferenceError(
                    f'Cannot register category "{prefbasename}", parent '
                    f'category "{basename}" already has a preference named '
                    f'"{category_name}".'
                )

        self.pref_register[prefbasename] = (prefs, prefbasedoc)
        for k, v in prefs.items():
            fullname = prefbasename + "." + k
            if fullname in self.pref_register:
                raise PreferenceError(
                    f'Cannot register "{fullname}" as a preference, it is '
                    "already registered as a preference category."
                )
            check_preference_name(k)
            if fullname not in self.prefs_unvalidated:
                self.prefs_unvalidated[fullname] = v.default
        self.do_validation()

    def do_validation(self):
        """
        Validates preferences that have not yet been validated.
        """
        for name, value in list(self.prefs_unvalidated.items()):
            basename, _ = parse_preference_name(name)
            if basename in self.pref_register:
                self[name] = value

    def check_all_validated(self):
        """
        Checks that all preferences that have been set have been validated.
        Logs a warning if not.
        """
        if len(self.prefs_unvalidated):
            from sgnsim.utils.logger import get_logger

            logger = get_logger(__name__)
            names = ", ".join(self.prefs_unvalidated.keys())
            logger.warn(
                "The following preferences values have been set but are not "
                f"registered preferences:\n{names}\nThis is usually because "
                "of a spelling mistake.",
                once=True,
            )

    def __repr__(self):
        categories = ", ".join(f'"{c}"' for c in self.toplevel_categories)
        return (
            f"<{self.__class__.__name__} with top-level categories: "
            f"{categories}>"
        )


class SimGlobalPreferencesView(MutableMapping):
    """
    A class allowing for accessing preferences in a subcategory. It forwards
    requests to `SimGlobalPreferences`.

    Parameters
    ----------
    basename : str
        The name of the preference category.
    all_prefs : `SimGlobalPreferences`
        A reference to the main object storing the preferences.
    """

    def __init__(self, basename, all_prefs):
        self._basename = basename
        self._all_prefs = all_prefs
        self._preferences = list(all_prefs.pref_register[basename][0].keys())

    _sub_preferences = property(
        lambda self: [
            pref[len(self._basename + ".") :]
            for pref in self._all_prefs
            if pref.startswith(self._basename + ".")
        ],
        doc="All preferences in this category and its subcategories",
    )

    def __getitem__(self, item):
        return self._all_prefs[self._basename + "." + item]

    def __setitem__(self, item, value):
        self._all_prefs[self._basename + "." + item] = value

    def __delitem__(self, item):
        raise PreferenceError("Preferences cannot be deleted.")

    def __len__(self):
        return len(self._sub_preferences)

    def __iter__(self):
        return iter(self._sub_preferences)

    def __contains__(self, item):
        return item in self._sub_preferences

    def __getattr__(self, name):
        return getattr(self._all_prefs, self._basename + "." + name)

    def __setattr__(self, name, value):
        # Names starting with an underscore are normal instance attributes
        if name.startswith("_"):
            MutableMapping.__setattr__(self, name, value)
        else:
            self._all_prefs[self._basename + "." + name] = value

    def __delattr__(self, name):
        if name.startswith("_"):
            MutableMapping.__delattr__(self, name)
        else:
            raise PreferenceError("Preferences cannot be deleted.")

    def __dir__(self):
        res = dir(type(self)) + list(self.__dict__.keys())
        res.extend(self._preferences)
        return res

    def __repr__(self):
        return (
            f'<{self.__class__.__name__} for preference category '
            f'"{self._basename}">'
        )


#: Object storing the preferences
prefs = SimGlobalPreferences()

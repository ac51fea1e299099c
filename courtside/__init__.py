"""Training-group scheduling, attendance and finance for a padel academy."""

__version__ = "0.1.0"

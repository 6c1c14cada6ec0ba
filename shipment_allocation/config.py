import os
import configparser
from pathlib import Path

class Config:
    """Configuration manager for the Shipment Allocation engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_dir = Path(os.environ.get('SHIPMENT_ALLOCATION_CONFIG_DIR', 'config'))
        self._config_path = self._config_dir / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)

        # Create config directory if it doesn't exist
        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)

        # Load config or create default
        if self._config_path.exists():
            self._config.read(self._config_path)
        else:
            self._create_default_config()

        self._initialized = True

    def _create_default_config(self):
        """Create default configuration file."""
        self._config['DATABASE'] = {
            'url': 'sqlite:///shipment_allocation.db',
            'echo': 'False'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._config['STOCK'] = {
            'weight_threshold': '150',
            'splitters': 'shipping_category,backordered,weight',
            'location_sorter': 'default_first',
            'allocator': 'on_hand_first'
        }

        self._config['SHIPPING'] = {
            'default_currency': 'USD',
            'frontend_only': 'True',
            'rate_sorter': 'cost'
        }

        self._save_config()

    def _save_config(self):
        """Save configuration to file."""
        with open(self._config_path, 'w') as configfile:
            self._config.write(configfile)

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_list(self, section, key, default=None):
        """Get a comma separated configuration value as a list of strings."""
        value = self.get(section, key)
        if value is None:
            return list(default or [])
        return [part.strip() for part in value.split(',') if part.strip()]

    def set(self, section, key, value):
        """Set configuration value."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))
        self._save_config()

    def get_db_url(self):
        """Get the SQLAlchemy database URL."""
        return self.get('DATABASE', 'url', 'sqlite:///shipment_allocation.db')

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def stock_config(self):
        """Get stock allocation configuration."""
        return {
            'weight_threshold': self.get_float('STOCK', 'weight_threshold', 150.0),
            'splitters': self.get_list('STOCK', 'splitters', ['shipping_category', 'backordered', 'weight']),
            'location_sorter': self.get('STOCK', 'location_sorter', 'default_first'),
            'allocator': self.get('STOCK', 'allocator', 'on_hand_first')
        }

    @property
    def shipping_config(self):
        """Get shipping rate configuration."""
        return {
            'default_currency': self.get('SHIPPING', 'default_currency', 'USD'),
            'frontend_only': self.get_boolean('SHIPPING', 'frontend_only', True),
            'rate_sorter': self.get('SHIPPING', 'rate_sorter', 'cost')
        }

# Global config instance
config = Config()

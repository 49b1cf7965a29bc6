"""Files manager: file storage API with session auth and thumbnail worker."""

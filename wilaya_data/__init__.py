"""Build wilayaData.json from wilaya, commune, and Noest reference sources."""

SERVICE_NAME = "exifserve"

from pydantic import BaseModel, ConfigDict

# Immutable lat/lng pair. Range checks live in utils.geofence.validate_coordinate
# so Geo Math itself stays a pure function of whatever it is handed.


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

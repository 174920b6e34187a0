from neowatch.models.neo import ApproachEvent as ApproachEvent
from neowatch.models.neo import OrbitalData as OrbitalData
from neowatch.models.neo import NearEarthObject as NearEarthObject
from neowatch.models.neo import EnrichedAsteroid as EnrichedAsteroid
from neowatch.models.neo import UpcomingResult as UpcomingResult
from neowatch.models.neo import BoardSnapshot as BoardSnapshot, BoardStatus as BoardStatus

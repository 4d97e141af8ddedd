from .coordinate import Coordinate
from .perimeter import Perimeter, PerimeterRead
from .shift import ClockEvent, Shift, ShiftRead, ShiftStatus, format_duration
from .user import RequestContext, UserRole

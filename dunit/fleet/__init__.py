from .fleet import Fleet as Fleet
from .host import Host as Host
from .vm import VM as VM

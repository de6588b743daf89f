from caseformat.bus.bus import Bus, BusType

import threading
import time

from geoindex.errors import StoreUnavailable
from geoindex.models import NO_DATA, Entry, Record
from geoindex.store import MemoryBlockStore, ObjectStat

COUNTRIES_CSV = b"""
name,alpha2,countryCallingCodes,alpha3,ioc,currencies,languages,ccTLD,status
Ascension Island,AC,+247,,SHP,USD,eng,.ac,reserved
Andorra,AD,+376,AND,AND,EUR,cat,,assigned
United Arab Emirates,AE,+971,ARE,UAE,AED,ara,,assigned
Afghanistan,AF,+93,AFG,AFG,AFN,pus,,assigned
Antigua And Barbuda,AG,+1 268,ATG,ANT,XCD,eng,,assigned
"""

LOCATIONS_CSV = b"""
# Copyright (c) 2012 MaxMind LLC.  All Rights Reserved.
locId,country,region,city,postalCode,latitude,longitude,metroCode,areaCode
1,"AD","","","",42.5000,1.5000,,
2,"AE","","","",24.0000,54.0000,,
3,"AF","","","",33.0000,65.0000,,
4,"AG","","","",17.0500,-61.8000,,
"""

BLOCKS_CSV = b"""
# Copyright (c) 2011 MaxMind Inc.  All Rights Reserved.
startIpNum,endIpNum,locId
"16777216","16777471","1"
"16777472","16778239","2"
"16778240","16779263","3"
"16779264","16781311","4"
"""

ANDORRA = Record("Andorra", "AD", "", "", "", 42.5, 1.5, "", "")
EMIRATES = Record("United Arab Emirates", "AE", "", "", "", 24.0, 54.0, "", "")
AFGHANISTAN = Record("Afghanistan", "AF", "", "", "", 33.0, 65.0, "", "")
ANTIGUA = Record("Antigua and Barbuda", "AG", "", "", "", 17.05, -61.8, "", "")

FIVE_ENTRIES = [
    Entry(1, NO_DATA),
    Entry(16777216, ANDORRA),
    Entry(16777472, EMIRATES),
    Entry(16778240, AFGHANISTAN),
    Entry(16779264, ANTIGUA),
]


def make_entries(count, start=16777216, step=256, city_prefix="City"):
    """Synthetic sorted entries, every seventh one without data."""
    entries = []
    for i in range(count):
        if i % 7 == 3:
            data = NO_DATA
        else:
            data = Record(
                f"Country {i % 11}", f"C{i % 11}", f"R{i % 5}", f"{city_prefix} {i}",
                f"{10000 + i}", round(-45.0 + i * 0.013, 4), round(100.0 - i * 0.021, 4), "", "",
            )
        entries.append(Entry(start + i * step, data))
    return entries


class LengthStubStore:
    """put() names objects after the payload length; stat() reports the name's length."""

    def __init__(self):
        self.payloads = []

    def put(self, payload):
        self.payloads.append(payload)
        return f"myhash{len(payload)}"

    def stat(self, address):
        return ObjectStat(size=len(address))

    def get(self, address):
        raise NotImplementedError


class FramingStore(MemoryBlockStore):
    """Reports every object as larger than its payload, like a store adding framing."""

    def __init__(self, overhead):
        super().__init__()
        self.overhead = overhead

    def stat(self, address):
        return ObjectStat(size=super().stat(address).size + self.overhead)


class FailingStore(MemoryBlockStore):
    """Raises StoreUnavailable for any payload containing ``marker``."""

    def __init__(self, marker):
        super().__init__()
        self.marker = marker

    def put(self, payload):
        if self.marker in payload:
            raise StoreUnavailable("store went away")
        return super().put(payload)


class JitterStore(MemoryBlockStore):
    """Delays each put by an amount derived from the payload, scrambling completion order."""

    def put(self, payload):
        time.sleep((len(payload) % 7) * 0.002)
        return super().put(payload)


class CountingStore(MemoryBlockStore):
    def __init__(self):
        super().__init__()
        self.stat_count = 0
        self._stat_lock = threading.Lock()

    def stat(self, address):
        with self._stat_lock:
            self.stat_count += 1
        return super().stat(address)


class ShrinkingStore(MemoryBlockStore):
    """Reports a quarter of the payload length, like a compressing store."""

    def stat(self, address):
        return ObjectStat(size=super().stat(address).size // 4)


class SlowExplodingStore(MemoryBlockStore):
    """Raises a non-store error for payloads containing ``marker``; every put is slow."""

    def __init__(self, marker):
        super().__init__()
        self.marker = marker
        self.calls = 0
        self._calls_lock = threading.Lock()

    def put(self, payload):
        with self._calls_lock:
            self.calls += 1
        time.sleep(0.01)
        if self.marker in payload:
            raise RuntimeError("disk on fire")
        return super().put(payload)

"""
Geocoding Client
Coordenadas, distancias e rotas via OpenStreetMap

APIs:
- Nominatim: busca e reverse geocoding
- ViaCEP: CEP -> endereco canonico
- Overpass: estabelecimentos proximos
- OSRM: rotas por estrada
"""

import base64
import math
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import structlog

from config.settings import settings
from prospector.exceptions import ProviderUnavailableError, UnresolvableLocationError
from prospector.models import Coordinates, DistanceResult, RouteInfo
from prospector.utils.cache import CacheManager
from prospector.utils.rate_limiter import RateLimiter
from prospector.utils.validators import clean_digits, extract_cep

from .base import BaseClient

logger = structlog.get_logger()

EARTH_RADIUS_KM = 6371.0

Location = Union[str, Coordinates]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distancia em km entre dois pontos (arredondada em 2 casas)"""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 2)


def parse_address_components(data: Dict[str, Any]) -> Dict[str, str]:
    """Extrai componentes do endereco de uma resposta do Nominatim"""
    address = data.get("address") or {}
    return {
        "street": address.get("road", ""),
        "neighborhood": address.get("neighbourhood") or address.get("suburb", ""),
        "city": address.get("city") or address.get("town") or address.get("municipality", ""),
        "state": address.get("state", ""),
        "country": address.get("country", "Brasil"),
        "postcode": address.get("postcode", ""),
    }


def _place_address(tags: Dict[str, str]) -> str:
    keys = ("addr:street", "addr:housenumber", "addr:neighbourhood", "addr:city")
    return ", ".join(tags[k] for k in keys if tags.get(k))


class GeocodingClient(BaseClient):
    """
    Cliente de geolocalizacao.

    Falhas de busca nunca propagam: get_coordinates retorna None.
    """

    SOURCE_NAME = "nominatim"

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        rate_limiter: Optional[RateLimiter] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.cache = cache or CacheManager("geocoding", default_ttl=settings.cache_ttl_geocoding)
        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests=settings.geocoding_rate_limit,
            window_seconds=settings.geocoding_rate_window,
            provider=self.SOURCE_NAME,
        )

    @staticmethod
    def _cache_key(address: str) -> str:
        return base64.urlsafe_b64encode(address.encode("utf-8")).decode("ascii")

    async def get_coordinates(self, address: str, _depth: int = 0) -> Optional[Coordinates]:
        """
        Busca coordenadas de um endereco

        Em caso de falha tenta resolver o CEP do endereco pelo ViaCEP
        e repete a busca uma unica vez com o endereco canonico.

        Args:
            address: Endereco em texto livre

        Returns:
            Coordinates ou None
        """
        if not address or not address.strip():
            return None

        key = self._cache_key(address)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        coords = await self._search(address)
        if coords is not None:
            self.cache.set(key, coords)
            return coords

        cep = extract_cep(address)
        if cep and _depth < 1:
            logger.info("geocoding_cep_fallback", cep=cep)
            coords = await self.get_coordinates_by_cep(cep, _depth=_depth + 1)
            if coords is not None:
                self.cache.set(key, coords)
            return coords

        return None

    async def _search(self, address: str) -> Optional[Coordinates]:
        if not self.rate_limiter.can_make_request():
            return None
        self.rate_limiter.record_request()

        try:
            data = await self.get_json(
                f"{settings.nominatim_url}/search",
                params={
                    "q": address,
                    "format": "json",
                    "limit": 1,
                    "countrycodes": settings.geocoding_country,
                },
            )
        except ProviderUnavailableError as e:
            logger.warning("geocoding_search_failed", error=e.reason)
            return None

        if not isinstance(data, list) or not data:
            logger.debug("geocoding_no_result", address=address[:60])
            return None

        try:
            first = data[0]
            return Coordinates(
                lat=float(first["lat"]),
                lng=float(first["lon"]),
                display_name=first.get("display_name"),
                components=parse_address_components(first),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("geocoding_malformed_result", error=str(e))
            return None

    async def get_coordinates_by_cep(self, cep: str, _depth: int = 1) -> Optional[Coordinates]:
        """Resolve o CEP pelo ViaCEP e geocodifica o endereco canonico"""
        cep_clean = clean_digits(cep)
        if len(cep_clean) != 8:
            return None

        try:
            data = await self.get_json(f"{settings.viacep_url}/{cep_clean}/json/", provider="viacep")
        except ProviderUnavailableError as e:
            logger.warning("viacep_failed", cep=cep_clean, error=e.reason)
            return None

        if not isinstance(data, dict) or data.get("erro"):
            logger.warning("viacep_invalid_cep", cep=cep_clean)
            return None

        canonical = (
            f"{data.get('logradouro', '')}, {data.get('bairro', '')}, "
            f"{data.get('localidade', '')}, {data.get('uf', '')}, Brasil"
        )
        return await self.get_coordinates(canonical, _depth=_depth)

    async def reverse_geocode(self, lat: float, lng: float) -> Optional[Dict[str, Any]]:
        """Endereco a partir de coordenadas"""
        key = f"reverse_{lat}_{lng}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            data = await self.get_json(
                f"{settings.nominatim_url}/reverse",
                params={"lat": lat, "lon": lng, "format": "json"},
            )
        except ProviderUnavailableError as e:
            logger.warning("reverse_geocode_failed", error=e.reason)
            return None

        if not isinstance(data, dict) or "error" in data:
            return None

        result = {
            "address": data.get("display_name", ""),
            "components": parse_address_components(data),
        }
        self.cache.set(key, result)
        return result

    async def _resolve(self, location: Location) -> Coordinates:
        if isinstance(location, Coordinates):
            return location
        coords = await self.get_coordinates(location)
        if coords is None:
            raise UnresolvableLocationError(location)
        return coords

    async def calculate_distance(self, origin: Location, destination: Location) -> DistanceResult:
        """
        Distancia em linha reta (Haversine)

        Raises:
            UnresolvableLocationError: se algum ponto nao tiver coordenadas
        """
        a = await self._resolve(origin)
        b = await self._resolve(destination)
        return DistanceResult(
            distance_km=haversine_distance(a.lat, a.lng, b.lat, b.lng),
            origin=a,
            destination=b,
        )

    async def get_routing_info(
        self,
        origin: Location,
        destination: Location,
        mode: str = "driving",
    ) -> RouteInfo:
        """
        Rota por estrada (OSRM), com fallback para linha reta

        Raises:
            UnresolvableLocationError: se algum ponto nao tiver coordenadas
        """
        a = await self._resolve(origin)
        b = await self._resolve(destination)

        try:
            data = await self.get_json(
                f"{settings.osrm_url}/route/v1/{mode}/{a.lng},{a.lat};{b.lng},{b.lat}",
                provider="osrm",
                params={"overview": "false", "steps": "false"},
            )
            routes = data.get("routes") if isinstance(data, dict) else None
            if routes:
                route = routes[0]
                return RouteInfo(
                    distance_km=round(route["distance"] / 1000, 2),
                    duration_min=round(route["duration"] / 60),
                    mode=mode,
                    origin=a,
                    destination=b,
                )
        except ProviderUnavailableError as e:
            logger.warning("routing_failed", mode=mode, error=e.reason)
        except (KeyError, TypeError) as e:
            logger.warning("routing_malformed_result", error=str(e))

        return RouteInfo(
            distance_km=haversine_distance(a.lat, a.lng, b.lat, b.lng),
            duration_min=None,
            mode="straight_line",
            origin=a,
            destination=b,
        )

    async def get_nearby_places(
        self,
        lat: float,
        lng: float,
        amenity: str = "restaurant",
        radius: int = 1000,
    ) -> List[Dict[str, Any]]:
        """
        Estabelecimentos proximos via Overpass

        Returns:
            Lista de lugares com coordenadas ([] em caso de falha)
        """
        around = f"(around:{radius},{lat},{lng})"
        query = (
            "[out:json][timeout:25];("
            f'node["amenity"="{amenity}"]{around};'
            f'way["amenity"="{amenity}"]{around};'
            f'relation["amenity"="{amenity}"]{around};'
            ");out center;"
        )

        try:
            data = await self.post_json(settings.overpass_url, provider="overpass", data={"data": query})
        except ProviderUnavailableError as e:
            logger.warning("nearby_places_failed", amenity=amenity, error=e.reason)
            return []

        places = []
        for element in (data or {}).get("elements", []):
            tags = element.get("tags") or {}
            center = element.get("center") or {}
            place_lat = element.get("lat") or center.get("lat")
            place_lng = element.get("lon") or center.get("lon")
            if not place_lat or not place_lng:
                continue
            places.append({
                "id": element.get("id"),
                "name": tags.get("name", "Nome não disponível"),
                "type": tags.get("amenity"),
                "cuisine": tags.get("cuisine"),
                "lat": place_lat,
                "lng": place_lng,
                "address": _place_address(tags),
                "phone": tags.get("phone"),
                "website": tags.get("website"),
                "opening_hours": tags.get("opening_hours"),
            })

        logger.info("nearby_places_found", amenity=amenity, count=len(places))
        return places

    @staticmethod
    def generate_map_url(lat: float, lng: float, zoom: int = 15) -> str:
        return f"https://www.openstreetmap.org/?mlat={lat}&mlon={lng}&zoom={zoom}"

    @staticmethod
    def generate_directions_url(origin: Location, destination: Location) -> str:
        def _point(location: Location) -> str:
            if isinstance(location, Coordinates):
                return f"{location.lat},{location.lng}"
            return location

        return (
            "https://www.google.com/maps/dir/"
            f"{quote(_point(origin), safe='')}/{quote(_point(destination), safe='')}"
        )

"""HTML map of the spot catalog.

Usage:
    python -m spotguide.spot_map spots.json [--db spotguide_state.db] [--output spots.html]
"""

import argparse
from typing import Iterable, Optional

import folium

from .models import Location, Spot


def create_spot_map(spots: Iterable[Spot], output_path: str,
                    position: Optional[Location] = None,
                    language: str = "ja") -> Optional[folium.Map]:
    """Write a map with one marker and radius circle per spot"""
    placed = [s for s in spots if s.has_coordinates]
    if not placed:
        print("No spots with coordinates to map")
        return None

    center_lat = sum(s.lat for s in placed) / len(placed)
    center_lon = sum(s.lon for s in placed) / len(placed)

    m = folium.Map(location=[center_lat, center_lon], zoom_start=16)

    folium.TileLayer("OpenStreetMap", name="OpenStreetMap").add_to(m)
    folium.TileLayer("CartoDB positron", name="Light").add_to(m)

    unlocked_group = folium.FeatureGroup(name="Unlocked spots", show=True)
    locked_group = folium.FeatureGroup(name="Locked spots", show=True)

    for spot in placed:
        name = spot.display_name(language)
        description = spot.description_primary if language == "ja" else spot.description_secondary
        state = "Unlocked" if spot.unlocked else "Locked"
        popup = f"""
            <b>#{spot.id} {name}</b><br>
            {description}<br>
            Radius: {spot.radius_m:.0f}m<br>
            Media: {spot.media_reference}<br>
            {state}
        """
        group = unlocked_group if spot.unlocked else locked_group
        color = "green" if spot.unlocked else "red"

        folium.Circle(
            location=[spot.lat, spot.lon],
            radius=spot.radius_m,
            color=color,
            weight=2,
            fill=True,
            fill_opacity=0.1,
        ).add_to(group)
        folium.Marker(
            [spot.lat, spot.lon],
            popup=folium.Popup(popup, max_width=250),
            tooltip=f"#{spot.id} {name}",
            icon=folium.Icon(color=color, icon="film")
        ).add_to(group)

    unlocked_group.add_to(m)
    locked_group.add_to(m)

    if position:
        folium.Marker(
            [position.lat, position.lon],
            popup="Current position",
            icon=folium.Icon(color="blue", icon="user")
        ).add_to(m)

    folium.LayerControl().add_to(m)
    m.save(output_path)
    print(f"Spot map saved to {output_path}")
    return m


def main():
    from .catalog import SpotCatalog
    from .feed import load_feed
    from .store import StateStore

    parser = argparse.ArgumentParser(description="Render the spot catalog to an HTML map")
    parser.add_argument("feed", help="Spot feed JSON file or URL")
    parser.add_argument("--db", metavar="FILE", help="Overlay unlock state from this database")
    parser.add_argument("--output", "-o", default="spots.html", help="Output HTML file")
    parser.add_argument("--lang", default="ja", help="Display language (default: ja)")
    args = parser.parse_args()

    catalog = SpotCatalog(load_feed(args.feed))
    if args.db:
        store = StateStore(args.db)
        restored, _ = store.restore()
        catalog.apply_overlay(restored)
        store.close()
    create_spot_map(catalog.spots, args.output, language=args.lang)


if __name__ == "__main__":
    main()

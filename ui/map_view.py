import dearpygui.dearpygui as dpg

from world.cells import Development, MacroCell, MicroCell, TerrainType
from game import settings
from game.game import Game

CELL_SIZE = 56
MAP_PIXELS = CELL_SIZE * 10
SIDEBAR_WIDTH = 380
LOG_LINES = 18

TERRAIN_COLORS = {
    TerrainType.LAND: (34, 102, 34, 255),
    TerrainType.OCEAN: (20, 50, 140, 255),
    TerrainType.MOUNTAIN: (110, 100, 90, 255),
    TerrainType.RIVER: (60, 130, 200, 255),
}

DEVELOPMENT_MARKS = {
    Development.FARM: "f",
    Development.MINE: "m",
    Development.FOREST: "w",
    Development.TOWN: "T",
    Development.CITY: "C",
    Development.CASTLE: "#",
}


def hex_to_rgba(value: str, alpha: int = 255) -> tuple:
    value = value.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16), alpha)


def terrain_color(terrain: TerrainType) -> tuple:
    return TERRAIN_COLORS.get(terrain, (200, 200, 200, 255))


def cell_color(cell: MacroCell) -> tuple:
    """Terrain color, tinted toward the owner's color when claimed."""
    base = terrain_color(cell.terrain)
    if cell.owner is None:
        return base
    owner = hex_to_rgba(settings.NATION_COLORS[cell.owner % len(settings.NATION_COLORS)])
    # Owner colors are dark; scale them up before blending
    tint = tuple(min(255, c * 4) for c in owner[:3])
    return tuple((b + t) // 2 for b, t in zip(base[:3], tint)) + (255,)


def cell_at_pos(x: float, y: float, cell_size: float, count: int):
    """Grid coordinate under pixel ``(x, y)`` or None outside the grid."""
    if x < 0 or y < 0:
        return None
    cx, cy = int(x // cell_size), int(y // cell_size)
    if cx >= count or cy >= count:
        return None
    return cx, cy


class MapView:
    def __init__(self, game: Game, size=(MAP_PIXELS + SIDEBAR_WIDTH + 30, MAP_PIXELS + 40)):
        self.game = game
        self.size = size
        self.canvas_size = MAP_PIXELS

        dpg.create_context()
        dpg.create_viewport(title="World Sandbox", width=size[0], height=size[1])
        with dpg.window(tag="_map_window", pos=(0, 0), width=MAP_PIXELS + 20, height=size[1],
                        no_move=True, no_resize=True, no_title_bar=True):
            self.canvas = dpg.add_drawlist(width=MAP_PIXELS, height=MAP_PIXELS, tag="_canvas")
        with dpg.window(tag="_side_window", pos=(MAP_PIXELS + 20, 0), width=SIDEBAR_WIDTH, height=size[1],
                        no_move=True, no_resize=True, no_title_bar=True):
            with dpg.group(horizontal=True):
                dpg.add_button(label="Next Turn", callback=self._next_turn)
                dpg.add_button(label="Auto-play", callback=self._autoplay)
                dpg.add_button(label="Pause", callback=self._pause)
            with dpg.group(horizontal=True):
                dpg.add_button(label="Reset", callback=self._reset)
                dpg.add_button(label="Zoom Out (Esc)", callback=self._zoom_out)
            dpg.add_separator()
            dpg.add_text("", tag="_stats")
            dpg.add_separator()
            dpg.add_text("", tag="_factions")
            dpg.add_separator()
            dpg.add_text("Recent battles")
            dpg.add_text("", tag="_battles", wrap=SIDEBAR_WIDTH - 20)
            dpg.add_separator()
            dpg.add_text("", tag="_log", wrap=SIDEBAR_WIDTH - 20)
        with dpg.handler_registry():
            dpg.add_mouse_click_handler(callback=self._on_click)
            dpg.add_key_press_handler(callback=self._on_key)
        dpg.setup_dearpygui()
        dpg.show_viewport()

    # event callbacks
    def _next_turn(self, sender=None, app_data=None):
        self.game.next_turn()

    def _autoplay(self, sender=None, app_data=None):
        self.game.autoplay()

    def _pause(self, sender=None, app_data=None):
        self.game.pause()

    def _reset(self, sender=None, app_data=None):
        self.game.reset()

    def _zoom_out(self, sender=None, app_data=None):
        self.game.zoom_out()

    def _on_click(self, sender, app_data):
        if app_data != dpg.mvMouseButton_Left or self.game.zoomed_square is not None:
            return
        mx, my = dpg.get_drawing_mouse_pos()
        coord = cell_at_pos(mx, my, CELL_SIZE, self.game.grid.size)
        if coord is not None:
            self.game.zoom_into_square(*coord)

    def _on_key(self, sender, app_data):
        if app_data == dpg.mvKey_Escape:
            self.game.zoom_out()
        elif app_data == dpg.mvKey_Spacebar:
            self.game.next_turn()

    # drawing
    def draw_marker(self, x: float, y: float, size: float, faction_id: int):
        color = hex_to_rgba(settings.NATION_COLORS[faction_id % len(settings.NATION_COLORS)])
        bright = tuple(min(255, c * 5) for c in color[:3]) + (255,)
        dpg.draw_circle((x + size / 2, y + size / 2), size / 4, color=(0, 0, 0, 255),
                        fill=bright, parent=self.canvas)

    def draw_outer(self):
        grid = self.game.grid
        size = self.canvas_size / grid.size
        for cell in grid.cells():
            x, y = cell.coord[0] * size, cell.coord[1] * size
            dpg.draw_rectangle((x, y), (x + size, y + size), color=(0, 0, 0, 255),
                               fill=cell_color(cell), parent=self.canvas)
            mark = DEVELOPMENT_MARKS.get(cell.development)
            if mark:
                dpg.draw_text((x + 3, y + 2), mark, color=(255, 255, 255, 255), size=14, parent=self.canvas)
            armies = [m.army for _, _, m in cell.iter_micro() if m.army is not None]
            if armies:
                self.draw_marker(x, y, size, armies[0].faction_id)
                if len(armies) > 1:
                    dpg.draw_text((x + size - 14, y + size - 16), str(len(armies)),
                                  color=(255, 255, 255, 255), size=12, parent=self.canvas)
        highlight = self.game.highlighted_square
        if highlight:
            hx, hy = highlight[0] * size, highlight[1] * size
            dpg.draw_rectangle((hx, hy), (hx + size, hy + size), color=(255, 215, 0, 255),
                               thickness=3, parent=self.canvas)

    def draw_micro(self, micro: MicroCell, x: float, y: float, size: float):
        color = terrain_color(micro.terrain)
        if micro.road:
            color = (139, 69, 19, 255)
        dpg.draw_rectangle((x, y), (x + size, y + size), color=(0, 0, 0, 80),
                           fill=color, parent=self.canvas)
        mark = DEVELOPMENT_MARKS.get(micro.development)
        if mark:
            dpg.draw_text((x + 3, y + 2), mark, color=(255, 255, 255, 255), size=14, parent=self.canvas)
        if micro.army is not None:
            self.draw_marker(x, y, size, micro.army.faction_id)

    def draw_inner(self, cell: MacroCell):
        size = self.canvas_size / self.game.grid.inner_size
        for ix, iy, micro in cell.iter_micro():
            self.draw_micro(micro, ix * size, iy * size, size)

    def draw_map(self):
        dpg.delete_item(self.canvas, children_only=True)
        zoomed = self.game.zoomed_square
        if zoomed is not None:
            self.draw_inner(self.game.grid[zoomed])
        else:
            self.draw_outer()

    def update_panels(self):
        game = self.game
        stats = game.game_stats()
        zoom = f"  viewing {game.zoomed_square}" if game.zoomed_square else ""
        dpg.set_value(
            "_stats",
            f"Turn {stats['turn']}  seed {stats['seed']}  [{game.phase.value}]{zoom}\n"
            f"Active nations: {stats['active_nations']}  armies: {stats['total_armies']}  "
            f"battles: {stats['total_battles']}",
        )
        lines = []
        for s in game.faction_summaries():
            status = "eliminated" if s["eliminated"] else f"strength {s['strength']}"
            res = s["resources"]
            lines.append(
                f"{s['name']}: {s['territory']} cells, {s['armies']} armies, {status}\n"
                f"  gold {res['gold']} wood {res['wood']} food {res['food']} metal {res['metal']}"
            )
        dpg.set_value("_factions", "\n".join(lines))
        dpg.set_value(
            "_battles",
            "\n".join(
                f"T{b.turn} {b.attacker} vs {b.defender} at {b.location}: {b.winner}"
                for b in game.recent_battles(5)
            ),
        )
        dpg.set_value(
            "_log",
            "\n".join(f"[T{e.turn}] {e.message}" for e in game.log_book.recent(LOG_LINES)),
        )

    def run(self):
        try:
            while dpg.is_dearpygui_running():
                with self.game.lock:
                    self.draw_map()
                    self.update_panels()
                dpg.render_dearpygui_frame()
        finally:
            self.game.pause()
            dpg.destroy_context()

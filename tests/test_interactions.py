from flet_pdf_annotator.interactions import DrawingHandler, SelectionHandler


class TestDrawingHandler:
    def test_collects_points_past_min_distance(self):
        handler = DrawingHandler(min_distance=5)
        handler.start_stroke(2, 0, 0)
        assert handler.active
        assert handler.page_index == 2
        assert handler.add_point(3, 0) is False
        assert handler.add_point(6, 0) is True
        assert handler.end_stroke() == [(0, 0), (6, 0)]
        assert not handler.active

    def test_single_point_stroke(self):
        handler = DrawingHandler()
        handler.start_stroke(0, 5, 5)
        assert handler.end_stroke() == [(5, 5)]

    def test_add_point_without_stroke(self):
        handler = DrawingHandler()
        assert handler.add_point(1, 1) is False
        assert handler.current_path == []

    def test_cancel(self):
        handler = DrawingHandler()
        handler.start_stroke(0, 0, 0)
        handler.add_point(50, 50)
        handler.cancel()
        assert not handler.active
        assert handler.end_stroke() == []


class TestSelectionHandler:
    def test_rect_is_normalized(self):
        handler = SelectionHandler()
        handler.start_selection(1, 50, 60)
        handler.update_selection(10, 20)
        assert handler.rect == (10, 20, 50, 60)
        assert not handler.is_tap

    def test_small_drag_is_a_tap(self):
        handler = SelectionHandler(tap_slop=4)
        handler.start_selection(0, 10, 10)
        handler.update_selection(12, 13)
        assert handler.is_tap

    def test_end_returns_final_state(self):
        handler = SelectionHandler()
        handler.start_selection(3, 0, 0)
        handler.update_selection(5, 5)
        state = handler.end_selection()
        assert (state.page_index, state.start, state.end) == (3, (0, 0), (5, 5))
        assert not handler.is_selecting
        assert handler.rect is None

    def test_update_without_start_is_ignored(self):
        handler = SelectionHandler()
        handler.update_selection(5, 5)
        assert handler.end is None

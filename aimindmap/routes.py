from typing import Any, Dict
from urllib.parse import quote

from flask import Response, jsonify, request

from .canvas import GenerationStatus
from .generator import GenerationError
from .mindmap import DEFAULT_NODE_CONTENT, DEFAULT_TITLE, THEME_COLORS, MindMap, Node, ThemeColor
from .newsletter import PdfRenderError, ScrapeError
from .newsletter.pdf import pdf_filename

IDEA_STATUS_CODES = {
    GenerationStatus.SUCCESS: 201,
    GenerationStatus.BUSY: 409,
    GenerationStatus.NO_MAP: 404,
    GenerationStatus.NOT_FOUND: 404,
    GenerationStatus.FAILED: 502,
}


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def register_routes(server):
    """Register routes for the server application"""

    def map_payload(mind_map: MindMap) -> Dict[str, Any]:
        return {"mindmap": mind_map.to_dict(), "layout": server.canvas.layout(mind_map).to_dict()}

    def current_payload() -> Dict[str, Any]:
        return map_payload(server.store.get_current_mind_map())

    @server.app.route("/colors", methods=["GET"])
    def list_colors():
        return jsonify(
            {"response": [{"value": color.value, **meta} for color, meta in THEME_COLORS.items()]}
        )

    @server.app.route("/mindmaps", methods=["GET"])
    def list_mindmaps():
        mindmaps = [
            {
                "id": mind_map.id,
                "title": mind_map.title,
                "theme": mind_map.theme.value,
                "nodeCount": len(mind_map.nodes),
                "updatedAt": mind_map.to_dict()["updatedAt"],
            }
            for mind_map in server.store.list_mind_maps()
        ]
        current = server.store.get_current_mind_map()
        return jsonify(
            {"response": {"mindmaps": mindmaps, "currentMapId": current.id if current else None}}
        )

    @server.app.route("/mindmaps", methods=["POST"])
    def create_mindmap():
        title = _json_body().get("title") or DEFAULT_TITLE
        if not isinstance(title, str):
            return _error("'title' must be a string", 400)
        mind_map = server.store.create_mind_map(title.strip() or DEFAULT_TITLE)
        return jsonify({"response": map_payload(mind_map)}), 201

    @server.app.route("/mindmaps/current", methods=["GET", "PATCH"])
    def current_mindmap():
        if server.store.get_current_mind_map() is None:
            return _error("No current mind map", 404)

        if request.method == "PATCH":
            data = _json_body()
            try:
                server.canvas.update_map(title=data.get("title"), theme=data.get("theme"))
            except ValueError as ex:
                return _error(str(ex), 400)

        return jsonify({"response": current_payload()})

    @server.app.route("/mindmaps/<map_id>/select", methods=["POST"])
    def select_mindmap(map_id: str):
        mind_map = server.store.select_mind_map(map_id)
        if mind_map is None:
            return _error(f"Mind map not found: {map_id}", 404)
        return jsonify({"response": map_payload(mind_map)})

    @server.app.route("/mindmaps/<map_id>", methods=["DELETE"])
    def delete_mindmap(map_id: str):
        if not server.store.delete_mind_map(map_id):
            return _error(f"Mind map not found: {map_id}", 404)
        return jsonify({"response": ""})

    @server.app.route("/mindmaps/<map_id>/export", methods=["GET"])
    def export_mindmap(map_id: str):
        exported = server.store.export_mind_map(map_id)
        if exported is None:
            return _error(f"Mind map not found: {map_id}", 404)
        filename = quote(f"{server.store.get_mind_map(map_id).title}-mindmap.json")
        return Response(
            exported,
            content_type="application/json",
            headers={"Content-Disposition": f"attachment; filename*=UTF-8''{filename}"},
        )

    @server.app.route("/mindmaps/import", methods=["POST"])
    def import_mindmap():
        data = _json_body()
        if len(data) == 0:
            return _error("Missing input data", 400)
        try:
            mind_map = server.store.import_mind_map(data)
        except ValueError as ex:
            return _error(f"Invalid mind map: {ex}", 400)
        return jsonify({"response": map_payload(mind_map)}), 201

    @server.app.route("/mindmaps/current/nodes", methods=["POST"])
    def add_node():
        data = _json_body()
        parent_id = data.get("parentId")
        if not parent_id:
            return _error("Missing 'parentId'", 400)

        try:
            color = ThemeColor(data.get("color", ThemeColor.OCEAN.value))
            node = server.canvas.add_child(parent_id, data.get("content") or DEFAULT_NODE_CONTENT, color)
        except ValueError as ex:
            return _error(str(ex), 400)

        if node is None:
            return _error(f"Parent node not found: {parent_id}", 404)
        return jsonify({"response": {"node": node.to_dict(), **current_payload()}}), 201

    @server.app.route("/mindmaps/current/nodes/<node_id>", methods=["PATCH", "DELETE"])
    def change_node(node_id: str):
        current = server.store.get_current_mind_map()
        node = current.get_node(node_id) if current else None
        if node is None:
            return _error(f"Node not found: {node_id}", 404)

        if request.method == "DELETE":
            if node.parent_id is None:
                return _error("The root node cannot be deleted", 400)
            deleted = server.canvas.delete_node(node_id)
            return jsonify({"response": {"deleted": sorted(deleted), **current_payload()}})

        data = _json_body()
        try:
            node = server.canvas.update_node(node_id, content=data.get("content"), color=data.get("color"))
        except ValueError as ex:
            return _error(str(ex), 400)
        return jsonify({"response": {"node": node.to_dict(), **current_payload()}})

    @server.app.route("/mindmaps/current/nodes/<node_id>/move", methods=["POST"])
    def move_node(node_id: str):
        parent_id = _json_body().get("parentId")
        if not parent_id:
            return _error("Missing 'parentId'", 400)
        if not server.canvas.move_node(node_id, parent_id):
            return _error(f"Cannot move {node_id} under {parent_id}", 400)
        return jsonify({"response": current_payload()})

    @server.app.route("/mindmaps/current/nodes/<node_id>/ideas", methods=["POST"])
    def expand_node(node_id: str):
        outcome = server.canvas.generate_ideas(node_id)
        status = IDEA_STATUS_CODES[outcome.status]
        if outcome.status != GenerationStatus.SUCCESS:
            return _error(outcome.message, status)

        return jsonify(
            {
                "response": {
                    "message": outcome.message,
                    "ideas": [node.content for node in outcome.nodes],
                    **current_payload(),
                }
            }
        ), status

    @server.app.route("/preferences", methods=["GET", "PATCH"])
    def preferences():
        if request.method == "PATCH":
            try:
                server.store.update_preferences(**_json_body())
            except ValueError as ex:
                return _error(str(ex), 400)
        return jsonify({"response": server.store.data.preferences.to_dict()})

    @server.app.route("/generate-ideas", methods=["POST"])
    def generate_ideas():
        data = _json_body()
        if not data.get("nodes") or not data.get("targetNodeId"):
            return _error("ノードデータまたはターゲットノードIDが不足しています", 400)

        try:
            nodes = [Node.from_dict(node) for node in data["nodes"]]
        except (TypeError, ValueError) as ex:
            return _error(f"Invalid nodes: {ex}", 400)

        try:
            ideas = server.idea_generator.generate(nodes, data["targetNodeId"])
        except KeyError:
            return _error("ターゲットノードが見つかりません", 404)
        except GenerationError as ex:
            server.app.logger.error("Idea generation failed: %s", ex)
            return _error("AIアイデア生成中にエラーが発生しました", 500)

        return jsonify({"ideas": ideas})

    @server.app.route("/scrape", methods=["GET", "POST"])
    def scrape():
        if request.method == "GET":
            url = request.args.get("url")
            if not url:
                return _error("URLパラメータが必要です", 400)
        else:
            url = _json_body().get("url")

        try:
            result = server.scraper.scrape(url)
        except ScrapeError as ex:
            return _error(str(ex), ex.status)
        return jsonify({"response": result.to_dict()})

    @server.app.route("/summarize", methods=["POST"])
    def summarize():
        data = _json_body()
        content = data.get("content")
        url = data.get("url")

        try:
            if url and not content:
                content = server.scraper.scrape(url).content
            summary = server.summarizer.summarize(content, data.get("maxLength"), data.get("tone"))
        except ScrapeError as ex:
            return _error(str(ex), ex.status)
        except ValueError as ex:
            return _error(str(ex), 400)
        except GenerationError as ex:
            return _error(f"要約に失敗しました: {ex}", 500)

        return jsonify({"response": summary.to_dict()})

    @server.app.route("/generate-pdf", methods=["POST"])
    def generate_pdf():
        data = _json_body()
        try:
            pdf = server.pdf_renderer.render(
                data.get("title"), data.get("summary"), data.get("url"), data.get("companyInfo")
            )
        except ValueError as ex:
            return _error(str(ex), 400)
        except PdfRenderError as ex:
            return _error(str(ex), 500)

        return Response(
            pdf,
            content_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{pdf_filename()}"'},
        )

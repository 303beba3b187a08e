"""Tests for route extraction and the inferred spec built from it."""

from docuhub.services.route_extractor import (
    Route,
    extract_routes,
    frameworks_for_file,
    normalize_route_path,
    resource_name,
    routes_to_spec,
)


def _pairs(routes):
    return [(r.method, r.path) for r in routes]


class TestExtraction:

    def test_express_plain_and_chained(self):
        source = """
const router = express.Router();
router.get('/users', listUsers);
app.post("/users", createUser);
router.route('/users/:id').get(getUser).put(updateUser);
router.get('/users', duplicate);
"""
        assert _pairs(extract_routes("express", "src/users.js", source)) == [
            ("get", "/users"),
            ("post", "/users"),
            ("get", "/users/{id}"),
            ("put", "/users/{id}"),
        ]

    def test_koa_del_alias(self):
        routes = extract_routes("koa", "src/r.js", "router.del('/items/:id', remove)")
        assert _pairs(routes) == [("delete", "/items/{id}")]

    def test_hapi_object_route(self):
        source = "server.route({ method: 'GET', path: '/health', handler })"
        assert _pairs(extract_routes("hapi", "server.js", source)) == [("get", "/health")]

    def test_nestjs_controller_prefix(self):
        source = """
@Controller('cats')
export class CatsController {
  @Get()
  findAll() {}

  @Post()
  create() {}

  @Get(':id')
  findOne() {}
}
"""
        assert _pairs(extract_routes("nestjs", "src/cats.controller.ts", source)) == [
            ("get", "/cats"),
            ("post", "/cats"),
            ("get", "/cats/{id}"),
        ]

    def test_nextjs_app_router(self):
        source = "export async function GET(req) {}\nexport async function DELETE(req) {}"
        routes = extract_routes("nextjs", "app/api/posts/[slug]/route.ts", source)
        assert _pairs(routes) == [("get", "/api/posts/{slug}"), ("delete", "/api/posts/{slug}")]

    def test_nextjs_ignores_files_outside_api(self):
        assert extract_routes("nextjs", "app/page.tsx", "export async function GET() {}") == []

    def test_laravel_routes_and_resources(self):
        source = """
Route::get('/orders/{order}', [OrderController::class, 'show']);
Route::apiResource('invoices', InvoiceController::class);
"""
        pairs = _pairs(extract_routes("laravel", "routes/api.php", source))
        assert pairs[0] == ("get", "/orders/{order}")
        assert ("post", "/invoices") in pairs
        assert ("delete", "/invoices/{id}") in pairs

    def test_symfony_attribute_methods(self):
        source = "#[Route('/blog/{slug}', name: 'blog_show', methods: ['GET', 'PATCH'])]"
        assert _pairs(extract_routes("symfony", "src/BlogController.php", source)) == [
            ("get", "/blog/{slug}"),
            ("patch", "/blog/{slug}"),
        ]

    def test_fastapi_decorators(self):
        source = '@router.get("/items/{item_id}")\nasync def read(): ...\n@app.post("/items")\ndef create(): ...'
        assert _pairs(extract_routes("fastapi", "app/items.py", source)) == [
            ("get", "/items/{item_id}"),
            ("post", "/items"),
        ]

    def test_flask_route_methods(self):
        source = '@app.route("/login", methods=["GET", "POST"])\n@bp.route("/users/<int:user_id>")'
        assert _pairs(extract_routes("flask", "app.py", source)) == [
            ("get", "/login"),
            ("post", "/login"),
            ("get", "/users/{user_id}"),
        ]

    def test_unknown_framework_yields_nothing(self):
        assert extract_routes("django", "urls.py", "path('a/', view)") == []

    def test_source_file_is_recorded(self):
        [route] = extract_routes("express", "src/a.js", "app.get('/a', h)")
        assert route.source_file == "src/a.js"


class TestHelpers:

    def test_normalize_route_path(self):
        assert normalize_route_path("users/:id/") == "/users/{id}"
        assert normalize_route_path("/users/<int:id>") == "/users/{id}"
        assert normalize_route_path("/users/{id?}") == "/users/{id}"
        assert normalize_route_path("/") == "/"

    def test_resource_name(self):
        assert resource_name("/api/users/{id}") == "user"
        assert resource_name("/address") == "address"
        assert resource_name("/{id}") == "resource"

    def test_frameworks_for_file(self):
        assert frameworks_for_file("src/a.ts", ["express", "laravel"]) == ["express"]
        assert frameworks_for_file("routes/web.php", ["express"]) == ["laravel", "symfony"]
        assert frameworks_for_file("main.py", []) == ["fastapi", "flask"]


class TestInferredSpec:

    def test_operations_are_described(self):
        spec = routes_to_spec(
            [
                Route("get", "/users", "a.js"),
                Route("post", "/users", "a.js"),
                Route("get", "/users/{id}", "a.js"),
                Route("patch", "/users/{id}", "a.js"),
            ],
            "shop API",
        )
        assert spec["openapi"] == "3.0.0"
        assert spec["info"]["title"] == "shop API"
        users = spec["paths"]["/users"]
        assert users["get"]["summary"] == "List user"
        assert users["post"]["summary"] == "Create user"
        assert "201" in users["post"]["responses"]
        assert "requestBody" in users["post"]
        assert "requestBody" not in users["get"]
        assert "404" not in users["get"]["responses"]

        item = spec["paths"]["/users/{id}"]
        assert item["get"]["summary"] == "Get user"
        assert item["patch"]["summary"] == "Partially update user"
        assert item["get"]["parameters"] == [
            {"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}
        ]
        assert "404" in item["get"]["responses"]
        assert spec["tags"] == [{"name": "User"}]

    def test_first_declaration_wins(self):
        spec = routes_to_spec([Route("get", "/a", "one.js"), Route("get", "/a", "two.js")], "x")
        assert spec["paths"]["/a"]["get"]["x-source-file"] == "one.js"

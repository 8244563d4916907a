"""Tests for the WebDAV repository client."""

import httpx
import pytest

from nextcloud_slideshow.config import RepositoryConfig
from nextcloud_slideshow.errors import NetworkError, ParseError, RequestTimeoutError
from nextcloud_slideshow.repository import RepositoryClient, create_http_client, extract_hrefs

from conftest import BASE_PATH, BASE_URL, make_config, multistatus


def make_client(handler, **config_overrides) -> RepositoryClient:
    config = make_config(**config_overrides)
    http = create_http_client(config.repository, transport=httpx.MockTransport(handler))
    return RepositoryClient(config.repository, http)


class TestListImages:
    """Listing requests and response handling."""

    @pytest.mark.asyncio
    async def test_propfind_request_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["depth"] = request.headers.get("Depth")
            seen["content_type"] = request.headers.get("Content-Type")
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(207, text=multistatus(["a.jpg"]))

        client = make_client(handler)
        assert await client.list_images() == ["a.jpg"]

        assert seen["method"] == "PROPFIND"
        assert seen["url"] == BASE_URL
        assert seen["depth"] == "1"
        assert seen["content_type"] == "application/xml"
        # alice:secret
        assert seen["auth"] == "Basic YWxpY2U6c2VjcmV0"

    @pytest.mark.asyncio
    async def test_recursive_uses_infinite_depth(self):
        depths = []

        def handler(request):
            depths.append(request.headers["Depth"])
            return httpx.Response(207, text=multistatus([]))

        client = make_client(handler, recursive=True)
        await client.list_images()
        assert depths == ["infinity"]

    @pytest.mark.asyncio
    async def test_filters_preserve_listing_order(self):
        hrefs = [
            "zebra.JPG",
            "notes.txt",
            "sub/",
            "alpha.png",
            "clip.mov",
            "mid.webp",
            "scan.TIF",
        ]

        client = make_client(lambda request: httpx.Response(207, text=multistatus(hrefs)))
        images = await client.list_images()
        assert images == ["zebra.JPG", "alpha.png", "mid.webp", "scan.TIF"]

    @pytest.mark.asyncio
    async def test_exclude_patterns_are_case_insensitive(self):
        hrefs = ["Trash/photo.jpg", "Holiday/beach.jpg", "private-1.png"]
        client = make_client(
            lambda request: httpx.Response(207, text=multistatus(hrefs)),
            recursive=True,
            exclude=("trash", "^PRIVATE"),
        )
        assert await client.list_images() == ["Holiday/beach.jpg"]

    @pytest.mark.asyncio
    async def test_empty_listing_is_not_an_error(self):
        client = make_client(lambda request: httpx.Response(207, text=multistatus(["readme.md"])))
        assert await client.list_images() == []

    @pytest.mark.asyncio
    async def test_http_error_carries_status(self):
        client = make_client(lambda request: httpx.Response(401, text="nope"))
        with pytest.raises(NetworkError) as excinfo:
            await client.list_images()
        assert excinfo.value.status == 401

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = make_client(handler)
        with pytest.raises(RequestTimeoutError):
            await client.list_images()

    @pytest.mark.asyncio
    async def test_connection_error_has_no_status(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with pytest.raises(NetworkError) as excinfo:
            await client.list_images()
        assert excinfo.value.status is None

    @pytest.mark.asyncio
    async def test_unparsable_body_raises_parse_error(self):
        client = make_client(lambda request: httpx.Response(207, text="<d:multistatus><broken"))
        with pytest.raises(ParseError):
            await client.list_images()


class TestParseListing:
    """Pure parsing of PROPFIND bodies."""

    def setup_method(self):
        self.client = make_client(lambda request: httpx.Response(500))

    def test_url_decodes_identifiers(self):
        body = multistatus(["Summer 2023/Café.jpg"])
        assert self.client.parse_listing(body) == ["Summer 2023/Café.jpg"]

    def test_base_directory_is_skipped(self):
        body = (
            '<d:multistatus xmlns:d="DAV:">'
            f"<d:response><d:href>{BASE_PATH}</d:href></d:response>"
            f"<d:response><d:href>{BASE_PATH}/</d:href></d:response>"
            f"<d:response><d:href>{BASE_PATH}/one.gif</d:href></d:response>"
            "</d:multistatus>"
        )
        assert self.client.parse_listing(body) == ["one.gif"]

    def test_absolute_href_urls(self):
        body = (
            '<d:multistatus xmlns:d="DAV:">'
            f"<d:response><d:href>{BASE_URL}/two.bmp</d:href></d:response>"
            "</d:multistatus>"
        )
        assert self.client.parse_listing(body) == ["two.bmp"]

    def test_counts_match_allowed_entries(self):
        names = [f"img{i}.jpeg" for i in range(7)] + ["doc.pdf", "folder/", "x.heic"]
        assert len(self.client.parse_listing(multistatus(names))) == 7

    def test_href_namespace_prefix_does_not_matter(self):
        body = (
            '<multistatus xmlns="DAV:">'
            f"<response><href>{BASE_PATH}/plain.jpg</href></response>"
            "</multistatus>"
        )
        assert extract_hrefs(body) == [f"{BASE_PATH}/plain.jpg"]
        assert self.client.parse_listing(body) == ["plain.jpg"]


def test_image_url_keeps_path_separators():
    client = make_client(lambda request: httpx.Response(500))
    assert client.image_url("sub dir/a b.jpg") == f"{BASE_URL}/sub%20dir/a%20b.jpg"


class TestEncodedBasePath:
    """Repository folders whose names need percent-encoding on the wire."""

    path = "https://cloud.example.com/remote.php/dav/files/alice/My Photos/Été"
    encoded = "/remote.php/dav/files/alice/My%20Photos/%C3%89t%C3%A9"

    def make_client(self) -> RepositoryClient:
        repository = RepositoryConfig(self.path, "alice", "secret")
        http = create_http_client(repository, transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        return RepositoryClient(repository, http)

    def test_encoded_hrefs_are_relative_to_base(self):
        body = (
            '<d:multistatus xmlns:d="DAV:">'
            f"<d:response><d:href>{self.encoded}/</d:href></d:response>"
            f"<d:response><d:href>{self.encoded}/a.jpg</d:href></d:response>"
            f"<d:response><d:href>{self.encoded}/Sub%20Dir/b%20c.png</d:href></d:response>"
            "</d:multistatus>"
        )
        client = self.make_client()
        assert client.parse_listing(body) == ["a.jpg", "Sub Dir/b c.png"]
        assert client.image_url("a.jpg") == f"{self.path}/a.jpg"

    def test_absolute_encoded_href(self):
        body = (
            '<d:multistatus xmlns:d="DAV:">'
            f"<d:response><d:href>https://cloud.example.com{self.encoded}</d:href></d:response>"
            f"<d:response><d:href>https://cloud.example.com{self.encoded}/x.gif</d:href></d:response>"
            "</d:multistatus>"
        )
        assert self.make_client().parse_listing(body) == ["x.gif"]

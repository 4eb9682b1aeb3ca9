"""
文件接口测试
"""

import pytest

from core.errors import ErrorCode
from tests.helpers import create_test_user, identity_headers
from utils.storage import get_storage_manager

CONTENT = b"quarterly numbers\n1,2,3\n"


async def upload(client, user, content=CONTENT, name="numbers.csv", **form):
    return await client.post(
        "/coder/file/upload",
        files={"file": (name, content, "text/csv")},
        data=form,
        headers=identity_headers(user),
    )


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_then_instant(self, client, normal_user, upload_dir):
        first = await upload(client, normal_user, business_type="attachment", module_name="report")
        assert first.status_code == 200
        data = first.json()["data"]
        assert data["instant"] is False
        assert data["owner_id"] == normal_user.id
        assert data["business_type"] == "ATTACHMENT"
        assert data["file_size"] == len(CONTENT)
        assert data["file_size_text"] == f"{len(CONTENT)} B"

        second = await upload(client, normal_user, name="copy.csv")
        assert second.json()["data"]["instant"] is True
        assert second.json()["data"]["id"] == data["id"]
        assert second.json()["message"] == "秒传成功"

    @pytest.mark.asyncio
    async def test_requires_identity(self, client, seeded):
        response = await client.post(
            "/coder/file/upload", files={"file": ("a.txt", b"abc", "text/plain")}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_requires_upload_permission(self, client, db_session, seeded):
        auditor = await create_test_user(db_session, "auditor1", role_codes=["AUDITOR"])
        response = await upload(client, auditor)
        assert response.status_code == 403
        assert response.json()["code"] == ErrorCode.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_too_large(self, client, normal_user, upload_dir):
        get_storage_manager().max_size = 8
        response = await upload(client, normal_user)
        assert response.status_code == 413
        assert response.json()["code"] == ErrorCode.FILE_TOO_LARGE


class TestMetadata:

    @pytest.mark.asyncio
    async def test_create_and_strict_conflict(self, client, normal_user, settings_override):
        payload = {"file_name": "spec.pdf", "file_size": 10, "file_md5": "a" * 32}
        created = await client.post("/coder/file/create", json=payload, headers=identity_headers(normal_user))
        assert created.status_code == 200
        assert created.json()["data"]["instant"] is False

        repeated = await client.post("/coder/file/create", json=payload, headers=identity_headers(normal_user))
        assert repeated.json()["data"]["id"] == created.json()["data"]["id"]
        assert repeated.json()["message"] == "文件已存在"

        settings_override(file_strict_md5=True)
        conflict = await client.post("/coder/file/create", json=payload, headers=identity_headers(normal_user))
        assert conflict.status_code == 409
        assert conflict.json()["code"] == ErrorCode.FILE_MD5_CONFLICT

    @pytest.mark.asyncio
    async def test_get_list_and_md5(self, client, normal_user, upload_dir):
        uploaded = (await upload(client, normal_user)).json()["data"]
        headers = identity_headers(normal_user)

        fetched = await client.get(f"/coder/file/get/{uploaded['id']}", headers=headers)
        assert fetched.json()["data"]["file_name"] == "numbers.csv"

        listed = await client.get("/coder/file/list", params={"file_name": "numbers"}, headers=headers)
        assert listed.json()["data"]["total"] == 1

        by_md5 = await client.get("/coder/file/get-by-md5", params={"md5": uploaded["file_md5"]}, headers=headers)
        assert by_md5.json()["data"]["id"] == uploaded["id"]

        missing = await client.get("/coder/file/get-by-md5", params={"md5": "b" * 32}, headers=headers)
        assert missing.status_code == 200
        assert missing.json()["data"] is None

    @pytest.mark.asyncio
    async def test_get_missing_file(self, client, normal_user):
        response = await client.get("/coder/file/get/12345", headers=identity_headers(normal_user))
        assert response.status_code == 404
        assert response.json()["code"] == ErrorCode.FILE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_requires_permission(self, client, admin, normal_user, upload_dir):
        uploaded = (await upload(client, normal_user)).json()["data"]
        payload = {"id": uploaded["id"], "remark": "季度数据"}

        denied = await client.put("/coder/file/update", json=payload, headers=identity_headers(normal_user))
        assert denied.status_code == 403

        allowed = await client.put("/coder/file/update", json=payload, headers=identity_headers(admin))
        assert allowed.json()["data"]["remark"] == "季度数据"


class TestDelete:

    @pytest.mark.asyncio
    async def test_user_cannot_delete(self, client, normal_user, upload_dir):
        uploaded = (await upload(client, normal_user)).json()["data"]
        response = await client.delete(f"/coder/file/delete/{uploaded['id']}", headers=identity_headers(normal_user))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_delete(self, client, admin, normal_user, upload_dir):
        uploaded = (await upload(client, normal_user)).json()["data"]
        response = await client.delete(f"/coder/file/delete/{uploaded['id']}", headers=identity_headers(admin))
        assert response.status_code == 200

        again = await client.delete(f"/coder/file/delete/{uploaded['id']}", headers=identity_headers(admin))
        assert again.status_code == 404

        # 删除后同样内容重新上传生成新记录
        reuploaded = (await upload(client, normal_user)).json()["data"]
        assert reuploaded["instant"] is False
        assert reuploaded["id"] != uploaded["id"]

    @pytest.mark.asyncio
    async def test_batch_delete(self, client, admin, normal_user, upload_dir):
        a = (await upload(client, normal_user, content=b"first file")).json()["data"]
        b = (await upload(client, normal_user, content=b"second file")).json()["data"]

        response = await client.request(
            "DELETE", "/coder/file/delete/batch",
            json={"ids": [a["id"], b["id"], 999]},
            headers=identity_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["data"] == {"deleted": sorted([a["id"], b["id"]]), "count": 2}


class TestCounters:

    @pytest.mark.asyncio
    async def test_counter_endpoints(self, client, normal_user, upload_dir):
        uploaded = (await upload(client, normal_user)).json()["data"]
        file_id = uploaded["id"]
        headers = identity_headers(normal_user)

        download = await client.put(f"/coder/file/download/{file_id}", headers=headers)
        assert download.json()["data"] == {"file_id": file_id, "download_count": 1}

        view = await client.put(f"/coder/file/view/{file_id}", headers=headers)
        assert view.json()["data"] == {"file_id": file_id, "view_count": 1}

        favorite = await client.put(f"/coder/file/favorite/{file_id}", headers=headers)
        assert favorite.json()["data"] == {"file_id": file_id, "favorite_count": 1}

        unfavorite = await client.put(f"/coder/file/unfavorite/{file_id}", headers=headers)
        assert unfavorite.status_code == 200

        fetched = await client.get(f"/coder/file/get/{file_id}", headers=headers)
        assert fetched.json()["data"]["favorite_count"] == 1

    @pytest.mark.asyncio
    async def test_counter_on_missing_file(self, client, normal_user):
        response = await client.put("/coder/file/view/777", headers=identity_headers(normal_user))
        assert response.status_code == 404

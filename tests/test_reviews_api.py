"""
Review API tests.

Tests:
1-3.  Submission: pending by default, HTML stripped, duplicates rejected
4.    Verified purchase is auto-approved and updates the product rating
5-6.  Product review listing with stats; only approved reviews shown
7-8.  Helpful votes (one per client, approved only)
9-10. Single review and recent reviews
11-13. Admin moderation, replies, deletion recompute the rating
"""

from conftest import order_payload
from woodkits import models


def _review(**overrides):
    payload = {
        "productId": "stairs",
        "customer": {"name": "Yael", "email": "yael@example.com"},
        "rating": 5,
        "title": "Solid build",
        "text": "Sturdy steps, easy to assemble, kids love them.",
    }
    payload.update(overrides)
    return payload


def _approve(db, review_id):
    review = db.query(models.Review).filter(models.Review.id == review_id).first()
    review.status = models.ReviewStatus.APPROVED
    db.commit()


# --- Submission ---

def test_submit_review_is_pending(client, seeded_products):
    """Anonymous review goes into moderation."""
    response = client.post("/api/v1/reviews", json=_review())
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "pending"
    assert data["verified"] is False


def test_submit_review_strips_html(client, db, seeded_products):
    """Tags are removed from title and text before storage."""
    response = client.post("/api/v1/reviews", json=_review(
        title="<b>Great</b>",
        text="<script>alert(1)</script>Really nice stairs for the loft.",
    ))
    review = db.query(models.Review).filter(models.Review.id == response.json()["data"]["id"]).first()
    assert review.title == "Great"
    assert "<" not in review.text
    assert review.text.endswith("Really nice stairs for the loft.")


def test_duplicate_review_rejected(client, seeded_products):
    """One review per email per product."""
    client.post("/api/v1/reviews", json=_review())
    response = client.post("/api/v1/reviews", json=_review(customer={"name": "Y", "email": "YAEL@example.com"}))
    assert response.status_code == 400
    assert response.json()["message"] == "You have already reviewed this product"


def test_verified_purchase_auto_approved(client, db, seeded_products):
    """Buyer's review is verified, published, and counted in the rating."""
    payload = order_payload()
    payload["customer"]["email"] = "yael@example.com"
    client.post("/api/v1/orders", json=payload)

    response = client.post("/api/v1/reviews", json=_review(rating=4))
    data = response.json()["data"]
    assert data["status"] == "approved"
    assert data["verified"] is True

    product = db.query(models.Product).filter(models.Product.product_id == "stairs").first()
    assert product.rating_average == 4.0
    assert product.rating_count == 1


def test_review_for_unknown_product_404(client, seeded_products):
    """Cannot review a product that doesn't exist."""
    response = client.post("/api/v1/reviews", json=_review(productId="ghost"))
    assert response.status_code == 404


# --- Listing ---

def test_product_reviews_only_approved_with_stats(client, db, seeded_products):
    """Pending reviews are hidden; stats cover approved ones."""
    first = client.post("/api/v1/reviews", json=_review(rating=5)).json()["data"]["id"]
    client.post("/api/v1/reviews", json=_review(
        rating=3, customer={"name": "Avi", "email": "avi@example.com"},
    ))
    _approve(db, first)

    response = client.get("/api/v1/reviews/product/stairs")
    data = response.json()["data"]
    assert [r["id"] for r in data["reviews"]] == [first]
    assert data["stats"]["totalReviews"] == 1
    assert data["stats"]["averageRating"] == 5
    assert data["stats"]["distribution"]["5"] == 1
    assert "email" not in data["reviews"][0]["customer"]


def test_product_reviews_unknown_product(client, seeded_products):
    """Unknown product: 404."""
    assert client.get("/api/v1/reviews/product/ghost").status_code == 404


# --- Helpful ---

def test_helpful_counts_once_per_client(client, db, seeded_products):
    """Voting twice from the same client counts once."""
    review_id = client.post("/api/v1/reviews", json=_review()).json()["data"]["id"]
    _approve(db, review_id)

    client.post(f"/api/v1/reviews/{review_id}/helpful")
    response = client.post(f"/api/v1/reviews/{review_id}/helpful")
    assert response.status_code == 200
    assert response.json()["data"]["helpfulCount"] == 1


def test_helpful_rejects_pending_review(client, seeded_products):
    """Unapproved reviews cannot be voted on."""
    review_id = client.post("/api/v1/reviews", json=_review()).json()["data"]["id"]
    response = client.post(f"/api/v1/reviews/{review_id}/helpful")
    assert response.status_code == 400


# --- Single / recent ---

def test_get_review_hides_pending(client, db, seeded_products):
    """Pending review: 404 until approved."""
    review_id = client.post("/api/v1/reviews", json=_review()).json()["data"]["id"]
    assert client.get(f"/api/v1/reviews/{review_id}").status_code == 404
    _approve(db, review_id)
    assert client.get(f"/api/v1/reviews/{review_id}").json()["data"]["rating"] == 5


def test_recent_reviews_min_rating(client, db, seeded_products):
    """Recent feed defaults to 4+ stars."""
    high = client.post("/api/v1/reviews", json=_review(rating=5)).json()["data"]["id"]
    low = client.post("/api/v1/reviews", json=_review(
        rating=2, customer={"name": "Avi", "email": "avi@example.com"},
    )).json()["data"]["id"]
    _approve(db, high)
    _approve(db, low)

    response = client.get("/api/v1/reviews/recent")
    assert [r["id"] for r in response.json()["data"]] == [high]


# --- Admin ---

def test_admin_moderation_updates_rating(client, db, admin_headers, seeded_products):
    """Approving through the admin API recomputes the product rating."""
    review_id = client.post("/api/v1/reviews", json=_review(rating=3)).json()["data"]["id"]

    pending = client.get("/api/v1/admin/reviews/pending", headers=admin_headers).json()["data"]
    assert [r["id"] for r in pending] == [review_id]
    assert pending[0]["customer"]["email"] == "yael@example.com"

    response = client.put(
        f"/api/v1/admin/reviews/{review_id}/moderate",
        json={"status": "approved", "moderationNotes": "ok"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["moderation"]["notes"] == "ok"

    product = db.query(models.Product).filter(models.Product.product_id == "stairs").first()
    assert product.rating_average == 3.0
    assert product.rating_count == 1


def test_admin_reply(client, db, admin_headers, seeded_products):
    """Replies are appended and shown publicly once approved."""
    review_id = client.post("/api/v1/reviews", json=_review()).json()["data"]["id"]
    _approve(db, review_id)
    response = client.post(
        f"/api/v1/admin/reviews/{review_id}/reply",
        json={"text": "Thank you!"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    replies = client.get(f"/api/v1/reviews/{review_id}").json()["data"]["replies"]
    assert replies[0]["text"] == "Thank you!"
    assert replies[0]["author"]["isAdmin"] is True


def test_admin_delete_review_recomputes_rating(client, db, admin_headers, seeded_products):
    """Deleting the only approved review resets the rating."""
    review_id = client.post("/api/v1/reviews", json=_review(rating=5)).json()["data"]["id"]
    client.put(f"/api/v1/admin/reviews/{review_id}/moderate",
               json={"status": "approved"}, headers=admin_headers)

    response = client.delete(f"/api/v1/admin/reviews/{review_id}", headers=admin_headers)
    assert response.status_code == 200

    product = db.query(models.Product).filter(models.Product.product_id == "stairs").first()
    db.refresh(product)
    assert product.rating_count == 0
    assert product.rating_average == 0

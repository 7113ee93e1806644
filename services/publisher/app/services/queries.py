"""GraphQL documents for the Shopify Admin API."""

PRODUCT_FIELDS = """
  id
  title
  status
  descriptionHtml
  images(first: 1) { edges { node { id } } }
  collections(first: 100) {
    pageInfo { hasNextPage endCursor }
    nodes { title handle }
  }
  options { name linkedMetafield { namespace key } }
  variants(first: 250) {
    pageInfo { hasNextPage endCursor }
    nodes {
      id
      title
      sku
      price
      selectedOptions { name value }
      inventoryItem { id harmonizedSystemCode countryCodeOfOrigin }
    }
  }
  metafieldChanges: metafield(namespace: "custom", key: "product_changes") { value }
  metafieldTax: metafield(namespace: "custom", key: "indian_tax_rate") { value }
  metafieldPreOrder: metafield(namespace: "custom", key: "new_pre_order_setting") { value }
  metafieldOrigin: metafield(namespace: "my_fields", key: "country_of_origin") { value }
  metafieldMainItemConfirmed: metafield(namespace: "custom", key: "main_item_confirmed") { value }
  metafieldCosmetics: metafield(namespace: "custom", key: "cosmetic_supplies") {
    references(first: 1) {
      nodes {
        __typename
        ... on Metaobject { id }
      }
    }
  }
"""

PRODUCTS_PAGE_QUERY = (
    """
  query ProductsPage($after: String) {
    products(first: 50, after: $after, query: "metafield:custom.product_changes:*") {
      pageInfo { hasNextPage endCursor }
      nodes {
"""
    + PRODUCT_FIELDS
    + """
      }
    }
  }
"""
)

PRODUCT_QUERY = (
    """
  query Product($id: ID!) {
    product(id: $id) {
"""
    + PRODUCT_FIELDS
    + """
    }
  }
"""
)

VARIANTS_PAGE_QUERY = """
  query ProductVariants($id: ID!, $after: String) {
    product(id: $id) {
      variants(first: 250, after: $after) {
        pageInfo { hasNextPage endCursor }
        nodes {
          id
          title
          sku
          price
          selectedOptions { name value }
          inventoryItem { id harmonizedSystemCode countryCodeOfOrigin }
        }
      }
    }
  }
"""

COLLECTIONS_PAGE_QUERY = """
  query ProductCollections($id: ID!, $after: String) {
    product(id: $id) {
      collections(first: 100, after: $after) {
        pageInfo { hasNextPage endCursor }
        nodes { title handle }
      }
    }
  }
"""

FIND_COLLECTION_BY_HANDLE = """
  query FindCollectionByHandle($q: String!) {
    collections(first: 1, query: $q) {
      nodes { id title handle }
    }
  }
"""

PRODUCT_VARIANTS_BY_SKU_QUERY = """
  query ProductVariantsBySku($q: String!) {
    productVariants(first: 20, query: $q) {
      nodes {
        id
        title
        sku
        price
        selectedOptions { name value }
        inventoryItem { id harmonizedSystemCode countryCodeOfOrigin }
        product {
          id
          title
          options { name linkedMetafield { namespace key } }
        }
      }
    }
  }
"""

METAOBJECT_BY_HANDLE = """
  query MetaobjectByHandle($type: String!, $handle: String!) {
    metaobjectByHandle(handle: { type: $type, handle: $handle }) {
      id
      type
      fields { key value }
    }
  }
"""

PRODUCT_TAX_QUERY = """
  query ProductTax($id: ID!) {
    product(id: $id) {
      metafield(namespace: "custom", key: "indian_tax_rate") { value }
    }
  }
"""

LOCATIONS_QUERY = """
  query Locations($after: String) {
    locations(first: 100, after: $after) {
      pageInfo { hasNextPage endCursor }
      nodes { id }
    }
  }
"""

PUBLICATIONS_QUERY = """
  query Publications($after: String) {
    publications(first: 100, after: $after) {
      pageInfo { hasNextPage endCursor }
      nodes { id name }
    }
  }
"""

PUBLICATIONS_MARKETS_QUERY = """
  query MarketPubs($after: String) {
    publications(first: 50, after: $after, catalogType: MARKET) {
      nodes {
        id
        catalog {
          __typename
          ... on MarketCatalog {
            title
          }
        }
      }
      pageInfo { hasNextPage endCursor }
    }
  }
"""

UPDATE_PRODUCT_STATUS = """
  mutation UpdateProductStatus($id: ID!, $status: ProductStatus!) {
    productUpdate(input: { id: $id, status: $status }) {
      product { id status }
      userErrors { field message }
    }
  }
"""

SET_METAFIELDS = """
  mutation SetMetafields($metafields: [MetafieldsSetInput!]!) {
    metafieldsSet(metafields: $metafields) {
      metafields { id }
      userErrors { field message }
    }
  }
"""

INVENTORY_ITEM_UPDATE = """
  mutation UpdateInventoryItem($id: ID!, $input: InventoryItemInput!) {
    inventoryItemUpdate(id: $id, input: $input) {
      inventoryItem { id countryCodeOfOrigin }
      userErrors { field message }
    }
  }
"""

INVENTORY_SET_ON_HAND = """
  mutation SetOnHand($input: InventorySetOnHandQuantitiesInput!) {
    inventorySetOnHandQuantities(input: $input) {
      userErrors { field message }
    }
  }
"""

COLLECTION_ADD_PRODUCTS = """
  mutation CollectionAddProducts($id: ID!, $productIds: [ID!]!) {
    collectionAddProducts(id: $id, productIds: $productIds) {
      collection { id }
      userErrors { field message }
    }
  }
"""

PUBLISHABLE_PUBLISH = """
  mutation PublishToChannel($id: ID!, $input: [PublicationInput!]!) {
    publishablePublish(id: $id, input: $input) {
      userErrors { field message }
    }
  }
"""
